"""Deterministic repository sharding into per-worker JSON payloads, gzipped when large."""

__version__ = "0.1.0"
__all__ = ["__version__"]