"""Errors raised while relaying registry requests."""

from typing import Mapping


class RegistryProxyError(Exception):
    """Base class for registry proxy errors."""


class RouteNotFound(RegistryProxyError):
    """No upstream is configured for the inbound routing key."""

    def __init__(self, key: str, routes: Mapping[str, str]):
        super().__init__(f"No upstream configured for {key!r}")
        self.key = key
        self.routes = dict(routes)


class AuthChallengeParseError(RegistryProxyError, ValueError):
    """Upstream WWW-Authenticate header is not a usable Bearer challenge."""

    def __init__(self, header: str, reason: str):
        super().__init__(f"Invalid WWW-Authenticate ({reason}): {header}")
        self.header = header
        self.reason = reason
