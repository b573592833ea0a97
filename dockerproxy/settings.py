from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from dockerproxy.packages.registry_proxy.types import DOCKER_HUB


class GeneralConfig(BaseSettings):
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    FORWARDED_ALLOW_IPS: str = "*"
    SENTRY_DSN: str = ""
    SENTRY_ENVIRONMENT: str = ""


class RoutingConfig(BaseSettings):
    CUSTOM_DOMAIN: str = "example.com"
    ROUTING_MODE: Literal["subdomain", "path"] = "subdomain"

    MODE: Literal["production", "debug"] = "production"
    TARGET_UPSTREAM: str = DOCKER_HUB
    """Upstream used for unknown hosts when MODE=debug"""

    EXTRA_ROUTES: dict[str, str] = {}
    EXTRA_ROUTE_HEADERS: dict[str, dict[str, str]] = {}
    FOLLOW_REDIRECT_ROUTES: list[str] = []


class UpstreamConfig(BaseSettings):
    UPSTREAM_CONNECT_TIMEOUT: float = 30.0
    UPSTREAM_READ_TIMEOUT: float = 1800.0  # 30 minutes for large blob downloads
    UPSTREAM_WRITE_TIMEOUT: float = 1800.0  # 30 minutes for large blob uploads
    UPSTREAM_POOL_TIMEOUT: float = 10.0


class Settings(
    GeneralConfig,
    RoutingConfig,
    UpstreamConfig,
    BaseSettings,
):
    model_config = SettingsConfigDict(
        env_file=(".env", ".env.prod", ".env.test"),
        extra="allow",
    )


settings = Settings()
