"""Application configuration and secret access."""
