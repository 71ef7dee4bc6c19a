"""Datadog Agent binary builder — cross-platform build and packaging orchestrator."""

__version__ = "0.1.0"
