"""API routers."""

from src.routers import health, reports

__all__ = ["health", "reports"]
