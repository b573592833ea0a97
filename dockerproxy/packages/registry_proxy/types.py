"""Registry proxy types and data structures.

This module contains shared types used across the registry proxy package.
No dependencies on dockerproxy.* modules to maintain independence.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from starlette.datastructures import URL

DOCKER_HUB = "https://registry-1.docker.io"


class RoutingStrategy(str, Enum):
    """How the routing key is taken from an inbound request."""

    SUBDOMAIN = "subdomain"
    PATH_PREFIX = "path"


@dataclass(frozen=True)
class Route:
    """A single upstream registry the proxy can relay to.

    Attributes:
        key: Routing key, either a full hostname (e.g. "ghcr-example.com")
             or a first path segment (e.g. "ghcr.io")
        upstream_origin: Scheme and host of the upstream registry
                         (e.g. "https://ghcr.io")
        extra_headers: Headers set on every request sent to this upstream,
                       overriding client supplied values (e.g. {"Host": "ghcr.io"})
        follow_redirects: Let the outbound client follow redirects for
                          forwarded requests instead of relaying them
    """

    key: str
    upstream_origin: str
    extra_headers: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )
    follow_redirects: bool = False

    @property
    def is_docker_hub(self) -> bool:
        return self.upstream_origin.rstrip("/") == DOCKER_HUB


RouteTable = Mapping[str, Route]


@dataclass(frozen=True)
class ResolvedRoute:
    """Outcome of routing an inbound host and path.

    Attributes:
        route: The selected upstream route
        upstream_path: Path to request on the upstream, routing prefix removed
        routing_prefix: The stripped prefix (e.g. "/ghcr.io"), empty for
                        subdomain routing
    """

    route: Route
    upstream_path: str
    routing_prefix: str = ""


@dataclass(frozen=True)
class RequestContext:
    """Everything one inbound request needs while it is being relayed."""

    url: URL
    resolved: ResolvedRoute
    authorization: Optional[str] = None

    @property
    def route(self) -> Route:
        return self.resolved.route

    @property
    def upstream_path(self) -> str:
        return self.resolved.upstream_path

    @property
    def routing_prefix(self) -> str:
        return self.resolved.routing_prefix

    @property
    def upstream_origin(self) -> str:
        return self.route.upstream_origin.rstrip("/")

    @property
    def upstream_url(self) -> str:
        target = f"{self.upstream_origin}{self.upstream_path}"
        if self.url.query:
            target = f"{target}?{self.url.query}"
        return target


@dataclass(frozen=True)
class AuthChallenge:
    """Bearer challenge returned by an upstream registry on 401."""

    realm: str
    service: str
