"""Async client for the HealthApp appointments and records backend."""

__version__ = "0.1.0"
