"""Terminal interaction."""
