"""Registry proxy package for the Docker Registry v2 / OCI Distribution API.

This package resolves the upstream registry for an inbound request and
relays it, including the authentication handshake, Docker Hub "library/"
redirects and blob redirect post-processing.
"""

from .errors import AuthChallengeParseError, RegistryProxyError, RouteNotFound
from .handler import proxy_registry_request
from .route_table import build_route_table, router_from_settings
from .router import Router
from .types import (
    DOCKER_HUB,
    AuthChallenge,
    RequestContext,
    ResolvedRoute,
    Route,
    RouteTable,
    RoutingStrategy,
)

__all__ = [
    # Routing
    "Router",
    "RoutingStrategy",
    "build_route_table",
    "router_from_settings",
    # Types
    "DOCKER_HUB",
    "AuthChallenge",
    "RequestContext",
    "ResolvedRoute",
    "Route",
    "RouteTable",
    # Errors
    "AuthChallengeParseError",
    "RegistryProxyError",
    "RouteNotFound",
    # Handler
    "proxy_registry_request",
]
