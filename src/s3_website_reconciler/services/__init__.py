"""Provider services."""
