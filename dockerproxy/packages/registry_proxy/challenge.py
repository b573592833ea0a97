"""Bearer challenge handling.

Parses upstream WWW-Authenticate headers, builds the proxy's own
challenge, and applies Docker Hub's implicit "library/" namespace to
token scopes.
"""

import httpx
from starlette.datastructures import URL
from starlette.responses import JSONResponse

from .errors import AuthChallengeParseError
from .types import AuthChallenge

PROXY_SERVICE = "cloudflare-docker-proxy"


def _parse_auth_params(params: str, header: str) -> dict[str, str]:
    """Tokenize `name="value", name=token` pairs of a challenge.

    Quoted values may contain backslash escaped characters.
    """
    values: dict[str, str] = {}
    pos, end = 0, len(params)

    while pos < end:
        while pos < end and params[pos] in " \t,":
            pos += 1
        if pos >= end:
            break

        start = pos
        while pos < end and params[pos] not in "= \t,":
            pos += 1
        name = params[start:pos].lower()

        while pos < end and params[pos] in " \t":
            pos += 1
        if pos >= end or params[pos] != "=":
            raise AuthChallengeParseError(header, f"expected '=' after {name!r}")
        pos += 1
        while pos < end and params[pos] in " \t":
            pos += 1

        if pos < end and params[pos] == '"':
            pos += 1
            chars = []
            while True:
                if pos >= end:
                    raise AuthChallengeParseError(header, "unterminated quoted string")
                char = params[pos]
                if char == "\\" and pos + 1 < end:
                    chars.append(params[pos + 1])
                    pos += 2
                    continue
                pos += 1
                if char == '"':
                    break
                chars.append(char)
            value = "".join(chars)
        else:
            start = pos
            while pos < end and params[pos] != ",":
                pos += 1
            value = params[start:pos].strip()

        values[name] = value

    return values


def parse_www_authenticate(header: str) -> AuthChallenge:
    """Parse a `Bearer realm="...",service="..."` challenge.

    Args:
        header: Raw WWW-Authenticate header value from the upstream

    Returns:
        The challenge realm and service

    Raises:
        AuthChallengeParseError: Not a Bearer challenge, malformed, missing
            realm or service, or the realm is not an absolute http(s) URL
    """
    scheme, _, params = header.strip().partition(" ")
    if scheme.lower() != "bearer":
        raise AuthChallengeParseError(header, "not a Bearer challenge")

    values = _parse_auth_params(params, header)
    realm = values.get("realm")
    service = values.get("service")
    if not realm:
        raise AuthChallengeParseError(header, "missing realm")
    if service is None:
        raise AuthChallengeParseError(header, "missing service")

    realm_url = httpx.URL(realm)
    if realm_url.scheme not in ("http", "https") or not realm_url.host:
        raise AuthChallengeParseError(header, "realm is not an absolute URL")

    return AuthChallenge(realm=realm, service=service)


def rewrite_docker_hub_scope(scope: str) -> str:
    """Qualify an official-image scope with Docker Hub's "library/" namespace.

    `repository:busybox:pull` becomes `repository:library/busybox:pull`;
    namespaced or differently shaped scopes are returned unchanged.
    """
    parts = scope.split(":")
    if len(parts) == 3 and "/" not in parts[1]:
        parts[1] = f"library/{parts[1]}"
    return ":".join(parts)


def unauthorized_response(url: URL) -> JSONResponse:
    """Build the proxy's own 401 challenge.

    The realm points at this proxy's /v2/auth endpoint on the inbound
    scheme and host, so clients fetch tokens through the proxy.
    """
    realm = f"{url.scheme}://{url.netloc}/v2/auth"
    return JSONResponse(
        status_code=401,
        content={"message": "UNAUTHORIZED"},
        headers={
            "WWW-Authenticate": f'Bearer realm="{realm}",service="{PROXY_SERVICE}"'
        },
    )
