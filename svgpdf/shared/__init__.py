"""Shared utilities: errors, logging, ids and request types."""
