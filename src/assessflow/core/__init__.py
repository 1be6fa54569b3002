"""Core schemas and structural validation."""
