"""Core infrastructure: configuration, logging, errors, storage clients."""
