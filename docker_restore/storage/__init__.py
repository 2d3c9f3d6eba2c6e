"""Snapshot discovery, archive reading and space checks."""
