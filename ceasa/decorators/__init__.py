"""Access-control decorators."""
