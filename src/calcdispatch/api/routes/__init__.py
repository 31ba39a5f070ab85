"""API route modules."""

from calcdispatch.api.routes import health, tasks

__all__ = ["health", "tasks"]
