"""Configuration, logging, errors and identity."""
