"""Version 1 HTTP API."""
