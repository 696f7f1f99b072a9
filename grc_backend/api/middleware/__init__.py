"""
API middleware.
"""

from grc_backend.api.middleware.request_id import RequestIdMiddleware

__all__ = ["RequestIdMiddleware"]
