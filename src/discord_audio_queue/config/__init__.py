"""Settings and dependency wiring."""
