"""Statistical primitives, scoring and regime tracking."""
