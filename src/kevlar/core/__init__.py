"""Configuration, exception hierarchy, logging and key helpers."""
