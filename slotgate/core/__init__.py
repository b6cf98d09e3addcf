"""Ambient configuration, error types, logging and wiring helpers."""
