"""Built-in upstream registries and route table construction."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from .router import Router
from .types import DOCKER_HUB, Route, RouteTable, RoutingStrategy


@dataclass(frozen=True)
class Upstream:
    """A well-known upstream registry.

    Attributes:
        name: Subdomain label used as "<name>-<custom domain>"
        origin: Upstream registry origin
        path_key: First path segment selecting it in path-prefix mode,
                  None when it has no path-prefix route
        host_header: Host header required by the upstream, if any
    """

    name: str
    origin: str
    path_key: str | None = None
    host_header: str | None = None


UPSTREAMS = (
    Upstream("docker", DOCKER_HUB, path_key="docker.io"),
    Upstream("quay", "https://quay.io", path_key="quay.io"),
    Upstream("gcr", "https://gcr.io", path_key="gcr.io", host_header="gcr.io"),
    Upstream("ghcr", "https://ghcr.io", path_key="ghcr.io", host_header="ghcr.io"),
    Upstream("k8s", "https://registry.k8s.io", path_key="registry.k8s.io"),
    Upstream("k8s-gcr", "https://k8s.gcr.io", path_key="k8s.gcr.io"),
    Upstream(
        "cloudsmith", "https://docker.cloudsmith.io", path_key="docker.cloudsmith.io"
    ),
    Upstream("ecr", "https://public.ecr.aws", path_key="public.ecr.aws"),
    Upstream("docker-staging", DOCKER_HUB),
)


def _builtin_routes(
    strategy: RoutingStrategy, custom_domain: str
) -> dict[str, tuple[str, dict[str, str]]]:
    routes = {}
    for upstream in UPSTREAMS:
        if strategy == RoutingStrategy.SUBDOMAIN:
            key = f"{upstream.name}-{custom_domain}"
        elif upstream.path_key:
            key = upstream.path_key
        else:
            continue

        headers = {"Host": upstream.host_header} if upstream.host_header else {}
        routes[key] = (upstream.origin, headers)
    return routes


def build_route_table(
    strategy: RoutingStrategy,
    custom_domain: str,
    extra_routes: Mapping[str, str] | None = None,
    extra_headers: Mapping[str, Mapping[str, str]] | None = None,
    follow_redirects: Iterable[str] = (),
) -> RouteTable:
    """Build the immutable route table.

    Operator supplied routes and headers are merged over the built-in
    registries; a route listed in follow_redirects lets the outbound
    client follow upstream redirects on forwarded requests.

    Args:
        strategy: Routing strategy the keys are built for
        custom_domain: Domain suffix for subdomain keys (e.g. "example.com")
        extra_routes: Additional or replacement routes, key -> origin
        extra_headers: Additional per-route headers, key -> header map
        follow_redirects: Keys of routes that follow redirects upstream

    Returns:
        Read-only mapping of routing key to Route
    """
    routes = _builtin_routes(strategy, custom_domain)
    for key, origin in (extra_routes or {}).items():
        headers = routes[key][1] if key in routes else {}
        routes[key] = (origin.rstrip("/"), headers)

    for key, headers in (extra_headers or {}).items():
        if key in routes:
            routes[key] = (routes[key][0], {**routes[key][1], **headers})

    follow = set(follow_redirects)
    return MappingProxyType(
        {
            key: Route(
                key=key,
                upstream_origin=origin,
                extra_headers=MappingProxyType(dict(headers)),
                follow_redirects=key in follow,
            )
            for key, (origin, headers) in routes.items()
        }
    )


def router_from_settings(settings: Any) -> Router:
    """Build the process-wide Router from application settings."""
    strategy = RoutingStrategy(settings.ROUTING_MODE)
    routes = build_route_table(
        strategy=strategy,
        custom_domain=settings.CUSTOM_DOMAIN,
        extra_routes=settings.EXTRA_ROUTES,
        extra_headers=settings.EXTRA_ROUTE_HEADERS,
        follow_redirects=settings.FOLLOW_REDIRECT_ROUTES,
    )

    fallback = None
    if settings.MODE == "debug" and strategy == RoutingStrategy.SUBDOMAIN:
        fallback = Route(key="*", upstream_origin=settings.TARGET_UPSTREAM.rstrip("/"))

    return Router(routes, strategy=strategy, fallback=fallback)
