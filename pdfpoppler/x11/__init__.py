"""X11 display probing."""
