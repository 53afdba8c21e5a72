"""Request-time rendering."""
