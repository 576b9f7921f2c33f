"""Core infrastructure: auth, database, errors, logging."""
