"""Service layer for the demo application."""
