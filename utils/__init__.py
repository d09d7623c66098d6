"""Shared utilities: cache, logging, retry and exceptions."""
