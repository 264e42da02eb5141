"""Shared pieces used by both the graph builder and the tutor."""
