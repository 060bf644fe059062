"""Core infrastructure: configuration, logging, database, resilience."""
