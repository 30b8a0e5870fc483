"""Input surfaces that turn user gestures into board operations."""
