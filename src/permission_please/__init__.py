"""Permission Please API."""
