import json

import pytest
from starlette.datastructures import URL

from ..challenge import (
    parse_www_authenticate,
    rewrite_docker_hub_scope,
    unauthorized_response,
)
from ..errors import AuthChallengeParseError

# --- WWW-Authenticate parsing ---


def test_parse_docker_hub_challenge():
    challenge = parse_www_authenticate(
        'Bearer realm="https://auth.docker.io/token",service="registry.docker.io"'
    )
    assert challenge.realm == "https://auth.docker.io/token"
    assert challenge.service == "registry.docker.io"


def test_parse_ignores_extra_params_spacing_and_case():
    challenge = parse_www_authenticate(
        'bearer  service="ghcr.io", realm="https://ghcr.io/token" ,scope="repository:a/b:pull"'
    )
    assert challenge.realm == "https://ghcr.io/token"
    assert challenge.service == "ghcr.io"


def test_parse_unescapes_quoted_pairs():
    challenge = parse_www_authenticate(
        r'Bearer realm="https://auth.example.com/token?a=\"b\"",service="say \\hi\\"'
    )
    assert challenge.realm == 'https://auth.example.com/token?a="b"'
    assert challenge.service == "say \\hi\\"


def test_parse_accepts_empty_service():
    challenge = parse_www_authenticate('Bearer realm="https://auth.example.com/token",service=""')
    assert challenge.service == ""


@pytest.mark.parametrize(
    "header",
    [
        'Bearer realm="https://auth.docker.io/token"',
        'Bearer service="registry.docker.io"',
        'Basic realm="https://auth.docker.io/token",service="registry.docker.io"',
        'Bearer realm="https://auth.docker.io/token,service="registry.docker.io',
        'Bearer realm="/token",service="registry.docker.io"',
        'Bearer realm "https://auth.docker.io/token"',
        "Bearer",
        "",
    ],
)
def test_parse_rejects_malformed_challenges(header: str):
    with pytest.raises(AuthChallengeParseError):
        parse_www_authenticate(header)


# --- Scope rewrite ---


@pytest.mark.parametrize(
    "scope,expected",
    [
        ("repository:busybox:pull", "repository:library/busybox:pull"),
        ("repository:library/busybox:pull", "repository:library/busybox:pull"),
        ("repository:owner/busybox:pull", "repository:owner/busybox:pull"),
        ("repository:busybox:pull,push", "repository:library/busybox:pull,push"),
        ("repository:busybox", "repository:busybox"),
        ("repository:localhost:5000/busybox:pull", "repository:localhost:5000/busybox:pull"),
    ],
)
def test_rewrite_docker_hub_scope(scope: str, expected: str):
    assert rewrite_docker_hub_scope(scope) == expected


def test_rewrite_docker_hub_scope_is_idempotent():
    once = rewrite_docker_hub_scope("repository:alpine:pull")
    assert rewrite_docker_hub_scope(once) == once


# --- Proxy challenge ---


def test_unauthorized_response_points_at_inbound_host():
    response = unauthorized_response(URL("https://docker.example.com/v2/library/a/manifests/1"))

    assert response.status_code == 401
    assert json.loads(response.body) == {"message": "UNAUTHORIZED"}
    assert response.headers["www-authenticate"] == (
        'Bearer realm="https://docker.example.com/v2/auth",service="cloudflare-docker-proxy"'
    )


def test_unauthorized_response_keeps_port_and_scheme():
    response = unauthorized_response(URL("http://localhost:8000/v2/"))

    assert response.headers["www-authenticate"] == (
        'Bearer realm="http://localhost:8000/v2/auth",service="cloudflare-docker-proxy"'
    )
