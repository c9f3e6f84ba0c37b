"""Shared utilities for gangsheet."""
