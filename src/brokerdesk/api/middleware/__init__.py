"""API middleware package."""

from src.brokerdesk.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
