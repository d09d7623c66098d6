"""Configuration for the market intelligence engine."""
