"""Shared module - process invocation."""
