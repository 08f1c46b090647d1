"""Interactive terminal front-ends."""
