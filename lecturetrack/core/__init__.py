"""Core infrastructure: logging, request context, errors and document storage."""
