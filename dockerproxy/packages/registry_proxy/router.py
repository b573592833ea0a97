"""Upstream resolution for inbound registry requests.

Two interchangeable strategies share one route table:

- subdomain: the full request hostname is the routing key and the path
  is relayed unchanged
- path prefix: the first path segment is the routing key when it names a
  route and is stripped from the path; anything else goes to Docker Hub
"""

from typing import Optional

import structlog

from .errors import RouteNotFound
from .types import DOCKER_HUB, ResolvedRoute, Route, RouteTable, RoutingStrategy

logger = structlog.stdlib.get_logger(__name__)


class Router:
    def __init__(
        self,
        routes: RouteTable,
        strategy: RoutingStrategy = RoutingStrategy.SUBDOMAIN,
        fallback: Optional[Route] = None,
    ):
        """Initialize the router.

        Args:
            routes: Immutable routing key -> Route table
            strategy: How to extract the routing key from a request
            fallback: Route used when no key matches. Path-prefix routing
                      defaults to Docker Hub; subdomain routing has none
                      unless one is given (debug mode)
        """
        self.routes = routes
        self.strategy = strategy
        if fallback is None and strategy == RoutingStrategy.PATH_PREFIX:
            fallback = self._docker_hub_route()
        self.fallback = fallback

    def _docker_hub_route(self) -> Route:
        for route in self.routes.values():
            if route.is_docker_hub:
                return route
        return Route(key="docker.io", upstream_origin=DOCKER_HUB)

    def describe(self) -> dict[str, str]:
        """Routing key -> upstream origin, for diagnostics."""
        return {key: route.upstream_origin for key, route in self.routes.items()}

    def resolve(self, host: str, path: str) -> ResolvedRoute:
        """Resolve the upstream for an inbound host and path.

        Args:
            host: Inbound hostname, without port
            path: Inbound URL path

        Returns:
            The selected route with the upstream-relative path

        Raises:
            RouteNotFound: No route matches and there is no fallback
        """
        if self.strategy == RoutingStrategy.PATH_PREFIX:
            return self._resolve_path_prefix(path)
        return self._resolve_subdomain(host, path)

    def _resolve_subdomain(self, host: str, path: str) -> ResolvedRoute:
        route = self.routes.get(host.lower())
        if route is None:
            if self.fallback is None:
                raise RouteNotFound(host, self.describe())
            logger.debug("Unknown host, using fallback upstream", host=host)
            route = self.fallback
        return ResolvedRoute(route=route, upstream_path=path)

    def _resolve_path_prefix(self, path: str) -> ResolvedRoute:
        segments = [segment for segment in path.split("/") if segment]
        if segments and segments[0] in self.routes:
            key = segments[0]
            prefix = f"/{key}"
            upstream_path = path[path.index(prefix) + len(prefix) :]
            if not upstream_path.startswith("/"):
                upstream_path = f"/{upstream_path}"
            return ResolvedRoute(
                route=self.routes[key],
                upstream_path=upstream_path,
                routing_prefix=prefix,
            )

        assert self.fallback is not None
        return ResolvedRoute(route=self.fallback, upstream_path=path)
