"""Gatekeeper — HTTP service with an ordered request-processing pipeline."""

__version__ = "0.1.0"
