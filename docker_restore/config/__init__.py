"""Configuration for restore runs."""
