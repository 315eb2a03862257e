"""Shared helpers (HTTP access and logging) used across registry and resolver modules."""
