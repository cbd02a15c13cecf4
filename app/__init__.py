"""Process startup for the curiosity server."""
