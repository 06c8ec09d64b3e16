"""Web API for Quorum.

FastAPI application exposing Setup, Quarterly Review and Quick Version
sessions as one endpoint per workflow transition, plus health checks.
"""

from __future__ import annotations

from quorum.web.app import build_services, create_app
from quorum.web.middleware import RequestLoggingMiddleware

__all__ = [
    "build_services",
    "create_app",
    "RequestLoggingMiddleware",
]
