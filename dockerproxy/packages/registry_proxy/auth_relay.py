"""Relay of the /v2/ version check and the /v2/auth token exchange.

The proxy presents itself as the token authority to clients. Behind the
scenes it probes the upstream's /v2/ endpoint, reads the upstream
challenge, and relays the token request to the realm it names.
"""

from typing import Iterable

import httpx
import structlog
from starlette.responses import Response

from .challenge import (
    parse_www_authenticate,
    rewrite_docker_hub_scope,
    unauthorized_response,
)
from .errors import AuthChallengeParseError
from .proxy import buffered_response
from .types import AuthChallenge, RequestContext

logger = structlog.stdlib.get_logger(__name__)


async def probe_upstream(
    client: httpx.AsyncClient, ctx: RequestContext
) -> httpx.Response:
    """GET the upstream /v2/ endpoint with only the client's credentials.

    Raises:
        httpx.HTTPError: If the upstream request fails
    """
    target_url = f"{ctx.upstream_origin}/v2/"
    headers = {}
    if ctx.authorization:
        headers["Authorization"] = ctx.authorization
    headers.update(ctx.route.extra_headers)

    logger.debug("Probing upstream registry", target_url=target_url)
    try:
        return await client.get(target_url, headers=headers, follow_redirects=True)
    except httpx.HTTPError as e:
        logger.error(
            "HTTP error while probing upstream registry",
            error=str(e),
            target_url=target_url,
        )
        raise


async def fetch_token(
    client: httpx.AsyncClient,
    challenge: AuthChallenge,
    scopes: Iterable[str],
    authorization: str | None,
) -> httpx.Response:
    """Request a token from the realm named in an upstream challenge.

    Args:
        client: Shared outbound HTTP client
        challenge: Parsed upstream challenge
        scopes: Scopes requested by the client, already rewritten
        authorization: Client's Authorization header, forwarded as is

    Returns:
        The realm's response, body read

    Raises:
        httpx.HTTPError: If the token request fails
    """
    url = httpx.URL(challenge.realm)
    if challenge.service:
        url = url.copy_set_param("service", challenge.service)

    scopes = [scope for scope in scopes if scope]
    if scopes:
        url = url.copy_remove_param("scope")
        for scope in scopes:
            url = url.copy_add_param("scope", scope)

    headers = {}
    if authorization:
        headers["Authorization"] = authorization

    logger.info("Fetching token", realm=challenge.realm, scopes=scopes)
    try:
        return await client.get(url, headers=headers, follow_redirects=True)
    except httpx.HTTPError as e:
        logger.error(
            "HTTP error while fetching token",
            error=str(e),
            realm=challenge.realm,
        )
        raise


async def check_version(client: httpx.AsyncClient, ctx: RequestContext) -> Response:
    """Handle /v2/: relay the upstream answer, replacing a 401 with our challenge."""
    upstream = await probe_upstream(client, ctx)
    if upstream.status_code == 401:
        return unauthorized_response(ctx.url)
    return buffered_response(upstream)


async def relay_token(
    client: httpx.AsyncClient,
    ctx: RequestContext,
    scopes: Iterable[str],
) -> Response:
    """Handle /v2/auth: exchange the client's credentials for an upstream token.

    Anything other than a parseable upstream Bearer challenge is answered
    with the upstream probe response itself.

    Args:
        client: Shared outbound HTTP client
        ctx: Routing context for this request
        scopes: `scope` query parameters sent by the client

    Returns:
        The token realm's response, or the upstream probe response
    """
    upstream = await probe_upstream(client, ctx)
    if upstream.status_code != 401:
        logger.warning(
            "Token requested for upstream that does not require auth",
            route=ctx.route.key,
            status_code=upstream.status_code,
        )
        return buffered_response(upstream)

    header = upstream.headers.get("www-authenticate")
    if not header:
        return buffered_response(upstream)

    try:
        challenge = parse_www_authenticate(header)
    except AuthChallengeParseError as e:
        logger.warning(
            "Could not parse upstream challenge",
            error=str(e),
            route=ctx.route.key,
        )
        return buffered_response(upstream)

    if ctx.route.is_docker_hub:
        scopes = [rewrite_docker_hub_scope(scope) for scope in scopes]

    token_response = await fetch_token(client, challenge, scopes, ctx.authorization)
    return buffered_response(token_response)
