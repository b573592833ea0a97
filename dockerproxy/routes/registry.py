"""Docker Registry v2 API relay.

Every path is handed to the registry proxy, which decides between the
version check, the token exchange, a Docker Hub "library/" redirect and
plain forwarding to the upstream registry.

See: https://distribution.github.io/distribution/spec/api/
"""

from fastapi import APIRouter, Request

from dockerproxy.deps.proxy import RegistryRouter, UpstreamClient
from dockerproxy.packages.registry_proxy import proxy_registry_request

router = APIRouter(tags=["Registry Proxy"])

RELAYED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@router.api_route("/{path:path}", methods=RELAYED_METHODS, include_in_schema=False)
async def relay(
    request: Request,
    registry_router: RegistryRouter,
    client: UpstreamClient,
):
    return await proxy_registry_request(request, registry_router, client)
