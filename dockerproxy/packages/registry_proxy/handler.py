"""Top-level request handling for the registry proxy.

Per request: resolve the upstream, answer the /v2/ and /v2/auth endpoints
through the auth relay, redirect unqualified Docker Hub repositories,
and forward everything else.
"""

import httpx
import structlog
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from .auth_relay import check_version, relay_token
from .errors import RouteNotFound
from .path_rewriter import library_redirect
from .proxy import forward_request, relay_response
from .router import Router
from .types import RequestContext

logger = structlog.stdlib.get_logger(__name__)

VERSION_CHECK_PATHS = ("/v2/", "/v2")
TOKEN_PATH = "/v2/auth"


async def proxy_registry_request(
    request: Request,
    router: Router,
    client: httpx.AsyncClient,
) -> Response:
    """Relay one registry client request.

    Args:
        request: Inbound request from the registry client
        router: Process-wide router over the immutable route table
        client: Shared outbound HTTP client

    Returns:
        The response for the client

    Raises:
        httpx.HTTPError: If an upstream request fails
    """
    url = request.url
    if url.path == "/":
        return RedirectResponse(f"{url.scheme}://{url.netloc}/v2/", status_code=301)

    try:
        resolved = router.resolve(url.hostname or "", url.path)
    except RouteNotFound as e:
        logger.info("No route for host", host=e.key)
        return JSONResponse(status_code=404, content={"routes": e.routes})

    ctx = RequestContext(
        url=url,
        resolved=resolved,
        authorization=request.headers.get("authorization"),
    )
    structlog.contextvars.bind_contextvars(route=ctx.route.key)

    if ctx.upstream_path in VERSION_CHECK_PATHS:
        return await check_version(client, ctx)

    if ctx.upstream_path == TOKEN_PATH:
        return await relay_token(client, ctx, request.query_params.getlist("scope"))

    redirect = library_redirect(ctx)
    if redirect is not None:
        return redirect

    upstream = await forward_request(client, request, ctx)
    return await relay_response(upstream, ctx)
