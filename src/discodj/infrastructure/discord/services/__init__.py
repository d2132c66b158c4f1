"""Discord-facing services: panel display, presence and button dispatch."""
