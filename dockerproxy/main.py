from contextlib import asynccontextmanager

import httpx
import structlog
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from dockerproxy.packages.registry_proxy import router_from_settings
from dockerproxy.routes import registry
from dockerproxy.settings import settings
from dockerproxy.utils.logging import setup_logger
from dockerproxy.utils.sentry import init_sentry

logger = structlog.stdlib.get_logger(__name__)


def upstream_client_factory() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            connect=settings.UPSTREAM_CONNECT_TIMEOUT,
            read=settings.UPSTREAM_READ_TIMEOUT,
            write=settings.UPSTREAM_WRITE_TIMEOUT,
            pool=settings.UPSTREAM_POOL_TIMEOUT,
        ),
        follow_redirects=False,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.router = router_from_settings(settings)
    logger.info(
        "Registry proxy routes loaded",
        routing_mode=settings.ROUTING_MODE,
        mode=settings.MODE,
        routes=app.state.router.describe(),
    )

    async with upstream_client_factory() as client:
        app.state.http_client = client
        yield


init_sentry()
app = FastAPI(lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
setup_logger(app)


@app.exception_handler(httpx.HTTPError)
async def upstream_exception_handler(request: Request, exc: httpx.HTTPError):
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"title": "Bad Gateway", "description": str(exc)},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"title": "Internal Server Error", "description": str(exc)},
    )


app.include_router(registry.router)


def run():
    uvicorn.run(
        "dockerproxy.main:app",
        host=settings.HOST,
        port=settings.PORT,
        proxy_headers=True,
        forwarded_allow_ips=settings.FORWARDED_ALLOW_IPS,
        log_config=None,
    )
