"""Core primitives: configuration, errors, models and identity resolution."""
