"""State machines and scheduled penalty orchestration."""
