"""URL shortener with click analytics."""
