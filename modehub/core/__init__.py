"""Core engine, models and services."""
