"""Market data models, output schemas and validation."""
