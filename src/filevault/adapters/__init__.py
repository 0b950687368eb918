"""Adapters – concrete backends for the application ports."""
