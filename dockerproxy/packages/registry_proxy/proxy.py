"""Generic HTTP relay utilities for the Docker Registry API.

This module forwards client requests to the resolved upstream and turns
upstream responses back into responses for the client:

- Streaming request bodies (for uploads)
- Streaming raw response bodies (for downloads)
- Header forwarding and hop-by-hop filtering
- 401 replacement with the proxy's own challenge
- Absolute Location headers on 307/308 blob redirects
"""

from typing import AsyncIterator, Iterable

import httpx
import structlog
from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import Response, StreamingResponse

from .challenge import unauthorized_response
from .types import RequestContext

logger = structlog.stdlib.get_logger(__name__)

HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-connection",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
    }
)

# Buffered bodies are re-emitted decoded, so their length and encoding
# headers no longer apply.
BUFFERED_EXCLUDED_HEADERS = HOP_BY_HOP_HEADERS | {"content-length", "content-encoding"}

BODY_METHODS = ("POST", "PUT", "PATCH")

REDIRECT_STATUSES = (307, 308)


async def stream_request_body(request: Request) -> AsyncIterator[bytes]:
    """Stream request body from client in chunks.

    Args:
        request: Starlette request object

    Yields:
        Chunks of request body data
    """
    async for chunk in request.stream():
        yield chunk


def copy_headers(
    response: Response,
    headers: Iterable[tuple[str, str]],
    exclude: frozenset[str] = HOP_BY_HOP_HEADERS,
) -> Response:
    """Append upstream headers to a response, keeping repeated headers."""
    for name, value in headers:
        if name.lower() not in exclude:
            response.headers.append(name, value)
    return response


def buffered_response(upstream: httpx.Response) -> Response:
    """Relay a fully read upstream response to the client."""
    response = Response(content=upstream.content, status_code=upstream.status_code)
    return copy_headers(
        response, upstream.headers.multi_items(), exclude=BUFFERED_EXCLUDED_HEADERS
    )


def build_upstream_headers(request: Request, ctx: RequestContext) -> httpx.Headers:
    """Copy client headers and overlay the route's extra headers.

    The inbound Host is dropped so the outbound one matches the upstream
    URL, unless the route sets it explicitly.
    """
    headers = httpx.Headers(
        [
            (name, value)
            for name, value in request.headers.items()
            if name.lower() not in HOP_BY_HOP_HEADERS and name.lower() != "host"
        ]
    )
    for name, value in ctx.route.extra_headers.items():
        headers[name] = value
    return headers


async def forward_request(
    client: httpx.AsyncClient,
    request: Request,
    ctx: RequestContext,
) -> httpx.Response:
    """Send the client's request to the upstream registry.

    Redirects are not followed unless the route opts in, so blob
    redirects reach relay_response untouched. The returned response is
    streaming and must be closed by the caller.

    Args:
        client: Shared outbound HTTP client
        request: Original request from the registry client
        ctx: Routing context for this request

    Returns:
        The upstream response, body not yet read

    Raises:
        httpx.HTTPError: If the upstream request fails
    """
    target_url = ctx.upstream_url
    logger.info(
        "Proxying request",
        method=request.method,
        target_url=target_url,
        route=ctx.route.key,
    )

    content = None
    if request.method in BODY_METHODS:
        content = stream_request_body(request)

    outbound = client.build_request(
        method=request.method,
        url=target_url,
        headers=build_upstream_headers(request, ctx),
        content=content,
    )

    try:
        upstream = await client.send(
            outbound,
            stream=True,
            follow_redirects=ctx.route.follow_redirects,
        )
    except httpx.TimeoutException as e:
        logger.error(
            "Timeout while proxying request",
            error=str(e),
            target_url=target_url,
        )
        raise
    except httpx.HTTPError as e:
        logger.error(
            "HTTP error while proxying request",
            error=str(e),
            target_url=target_url,
        )
        raise

    logger.info(
        "Proxy response received",
        status_code=upstream.status_code,
        target_url=target_url,
    )
    return upstream


def absolute_location(location: str, upstream_origin: str) -> str:
    """Resolve a Location header against the upstream origin.

    Absolute locations are returned untouched.
    """
    if httpx.URL(location).is_absolute_url:
        return location
    return str(httpx.URL(f"{upstream_origin}/").join(location))


async def relay_response(upstream: httpx.Response, ctx: RequestContext) -> Response:
    """Turn a forwarded upstream response into the client response.

    Args:
        upstream: Streaming response returned by forward_request
        ctx: Routing context for this request

    Returns:
        The proxy's own challenge for 401s, otherwise the upstream status,
        headers and raw body, with relative 307/308 locations made absolute
    """
    if upstream.status_code == 401:
        await upstream.aclose()
        logger.info(
            "Upstream requires authentication, issuing proxy challenge",
            route=ctx.route.key,
        )
        return unauthorized_response(ctx.url)

    headers = upstream.headers.multi_items()
    if upstream.status_code in REDIRECT_STATUSES and "location" in upstream.headers:
        location = upstream.headers["location"]
        rewritten = absolute_location(location, ctx.upstream_origin)
        if rewritten != location:
            logger.debug(
                "Rewrote Location header",
                original=location,
                rewritten=rewritten,
            )
        headers = [
            (name, rewritten if name.lower() == "location" else value)
            for name, value in headers
        ]

    async def generate():
        try:
            async for chunk in upstream.aiter_raw():
                yield chunk
        finally:
            await upstream.aclose()

    response = StreamingResponse(
        content=generate(),
        status_code=upstream.status_code,
        background=BackgroundTask(upstream.aclose),
    )
    return copy_headers(response, headers)
