"""Event table input."""
