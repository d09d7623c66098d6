"""Upstream metrics sources."""
