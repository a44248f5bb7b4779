"""TeamSync workspace collaboration core."""
