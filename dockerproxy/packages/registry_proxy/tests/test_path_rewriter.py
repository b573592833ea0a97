from typing import Optional

import pytest
from starlette.datastructures import URL

from ..path_rewriter import library_redirect, repository_name
from ..types import DOCKER_HUB, RequestContext, ResolvedRoute, Route

DOCKER_HUB_ROUTE = Route(key="docker.io", upstream_origin=DOCKER_HUB)
QUAY_ROUTE = Route(key="quay.io", upstream_origin="https://quay.io")


def _context(
    url: str, route: Route, upstream_path: str, prefix: str = ""
) -> RequestContext:
    return RequestContext(
        url=URL(url),
        resolved=ResolvedRoute(
            route=route, upstream_path=upstream_path, routing_prefix=prefix
        ),
    )


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/v2/busybox/manifests/latest", "busybox"),
        ("/v2/library/busybox/blobs/sha256:abc", "library/busybox"),
        ("/v2/a/b/c/tags/list", "a/b/c"),
        ("/v2/busybox/referrers/sha256:abc", "busybox"),
        ("/v2/_catalog", None),
        ("/v2/busybox/unknown/x", None),
        ("/v1/busybox/manifests/latest", None),
        ("/v2/", None),
    ],
)
def test_repository_name(path: str, expected: Optional[str]):
    assert repository_name(path) == expected


def test_unqualified_docker_hub_name_redirects_to_library():
    ctx = _context(
        "https://docker.example.com/v2/busybox/manifests/latest",
        DOCKER_HUB_ROUTE,
        "/v2/busybox/manifests/latest",
    )

    response = library_redirect(ctx)

    assert response is not None
    assert response.status_code == 301
    assert response.headers["location"] == (
        "https://docker.example.com/v2/library/busybox/manifests/latest"
    )


def test_redirect_keeps_prefix_and_query():
    ctx = _context(
        "https://example.com/docker.io/v2/alpine/blobs/uploads/?mount=sha256:1&from=x",
        DOCKER_HUB_ROUTE,
        "/v2/alpine/blobs/uploads/",
        prefix="/docker.io",
    )

    response = library_redirect(ctx)

    assert response is not None
    assert response.headers["location"] == (
        "https://example.com/docker.io/v2/library/alpine/blobs/uploads/?mount=sha256:1&from=x"
    )


@pytest.mark.parametrize(
    "path",
    [
        "/v2/library/busybox/manifests/latest",
        "/v2/bitnami/redis/manifests/latest",
        "/v2/library/manifests/latest",
        "/v2/_catalog",
        "/v2/busybox",
    ],
)
def test_no_redirect_for_qualified_or_non_repository_paths(path: str):
    ctx = _context(f"https://docker.example.com{path}", DOCKER_HUB_ROUTE, path)
    assert library_redirect(ctx) is None


def test_no_redirect_for_other_registries():
    path = "/v2/busybox/manifests/latest"
    ctx = _context(f"https://quay.example.com{path}", QUAY_ROUTE, path)
    assert library_redirect(ctx) is None
