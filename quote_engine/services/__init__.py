"""Domain services for the quote lifecycle."""
