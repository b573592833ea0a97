"""Docker Hub official image redirects.

Docker Hub serves official images under the implicit "library/"
namespace. Requests for `/v2/<name>/...` with a single-component name
are redirected to `/v2/library/<name>/...` so clients cache and
authenticate against the canonical repository.
"""

from typing import Optional

import structlog
from starlette.responses import RedirectResponse

from .types import RequestContext

logger = structlog.stdlib.get_logger(__name__)

REGISTRY_RESOURCES = ("manifests", "blobs", "tags", "referrers")


def repository_name(upstream_path: str) -> Optional[str]:
    """Extract the repository name from a `/v2/<name>/<resource>/...` path."""
    segments = [segment for segment in upstream_path.split("/") if segment]
    if len(segments) < 3 or segments[0] != "v2":
        return None

    for index in range(2, len(segments)):
        if segments[index] in REGISTRY_RESOURCES:
            return "/".join(segments[1:index])
    return None


def library_redirect(ctx: RequestContext) -> Optional[RedirectResponse]:
    """Redirect unqualified Docker Hub repositories into "library/".

    Returns:
        A 301 to the qualified path, keeping any routing prefix and query
        string, or None when the request needs no rewrite
    """
    if not ctx.route.is_docker_hub:
        return None

    name = repository_name(ctx.upstream_path)
    if name is None or "/" in name or name == "library":
        return None

    rest = ctx.upstream_path.split("v2/", 1)[1]
    location = str(ctx.url.replace(path=f"{ctx.routing_prefix}/v2/library/{rest}"))
    logger.info("Redirecting to library repository", repository=name, location=location)
    return RedirectResponse(location, status_code=301)
