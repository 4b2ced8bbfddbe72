"""HTTP health probes against the endpoints of a started environment."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

import requests

from envctl import azure_ops

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Endpoint:
    name: str
    base_url: str


@dataclass(frozen=True, slots=True)
class HealthResult:
    name: str
    url: str
    status_code: int | None
    ok: bool
    error: str | None = None


def discover_endpoints(resource_group: str) -> list[Endpoint]:
    """Collect HTTPS base URLs of web apps and externally reachable Container Apps."""
    endpoints: list[Endpoint] = []

    for app in azure_ops.list_webapps(resource_group):
        host = app.get("defaultHostName")
        if host:
            endpoints.append(Endpoint(app["name"], f"https://{host}"))

    for app in azure_ops.list_container_apps(resource_group):
        configuration = (app.get("properties") or {}).get("configuration") or {}
        ingress = configuration.get("ingress") or {}
        fqdn = ingress.get("fqdn")
        # internal ingress is only reachable from inside the environment
        if fqdn and ingress.get("external", True):
            endpoints.append(Endpoint(app["name"], f"https://{fqdn}"))

    return endpoints


def check_endpoint(
    endpoint: Endpoint,
    path: str = "/health",
    timeout: float = 30.0,
) -> HealthResult:
    """GET ``{base_url}{path}``; only HTTP 200 counts as healthy."""
    url = endpoint.base_url.rstrip("/") + path
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("Health check %s failed: %s", url, exc)
        return HealthResult(endpoint.name, url, None, False, str(exc))

    ok = response.status_code == 200
    if ok:
        logger.info("Health check %s -> %d", url, response.status_code)
    else:
        logger.warning("Health check %s -> %d", url, response.status_code)
    return HealthResult(
        endpoint.name,
        url,
        response.status_code,
        ok,
        None if ok else f"HTTP {response.status_code}",
    )


def run_health_checks(
    endpoints: Iterable[Endpoint],
    path: str = "/health",
    timeout: float = 30.0,
) -> list[HealthResult]:
    return [check_endpoint(ep, path, timeout) for ep in endpoints]
