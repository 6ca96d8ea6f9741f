"""Shared utilities: logging, locking and upload handling."""
