"""Shared helpers: logging, retries, timestamps."""
