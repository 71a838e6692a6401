"""Configuration layer — section models, settings, logging setup."""
