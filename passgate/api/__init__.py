"""
passgate HTTP API.
"""

from passgate.api.handler import (
    AuthRequest,
    cookie_transport_factory,
    create_auth_app,
    create_auth_router,
    header_transport_factory,
    parse_auth_request,
)

__all__ = [
    "AuthRequest",
    "cookie_transport_factory",
    "create_auth_app",
    "create_auth_router",
    "header_transport_factory",
    "parse_auth_request",
]
