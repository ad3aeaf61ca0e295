"""Idempotent, atomic balance transfers on a transactional store."""

__version__ = "0.1.0"
