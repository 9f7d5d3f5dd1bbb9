"""Core types, cache and HTTP session helpers."""
