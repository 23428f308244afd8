"""Shared infrastructure: logging, exceptions, paths and value normalization."""
