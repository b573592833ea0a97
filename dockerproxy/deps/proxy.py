from typing import Annotated

import httpx
from fastapi import Depends, Request

from dockerproxy.packages.registry_proxy import Router


def get_router(request: Request) -> Router:
    return request.app.state.router


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


RegistryRouter = Annotated[Router, Depends(get_router)]
UpstreamClient = Annotated[httpx.AsyncClient, Depends(get_http_client)]
