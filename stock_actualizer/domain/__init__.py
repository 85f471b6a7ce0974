"""Domain model and policies."""
