"""Hostname → tenant slug resolution.

Pure string handling only: this module runs on every request at the edge
and must never touch the database.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from urllib.parse import urlsplit

from saasresto.core.config import APP_BASE_DOMAIN, APP_URL, COOKIE_SECURE, IS_DEV, TENANT_HEADER
from saasresto.utils.slug import RESERVED_SUBDOMAINS, matches_slug_grammar

_PORT_SUFFIX = re.compile(r":\d*\Z")


def normalize_host(host: str | None) -> str | None:
    """Strip the port, surrounding whitespace and a trailing root dot; lowercase.

    "Pizza.SaasResto.localhost:3000" -> "pizza.saasresto.localhost"
    """
    if not host:
        return None
    normalized = host.strip().lower()
    normalized = _PORT_SUFFIX.sub("", normalized).rstrip(".")
    return normalized or None


def normalize_base_domain(base_domain: str | None) -> str:
    normalized = normalize_host(base_domain) or ""
    if normalized.startswith("*."):
        normalized = normalized[2:]
    return normalized.lstrip(".")


def is_reserved_subdomain(label: str) -> bool:
    return label.lower() in RESERVED_SUBDOMAINS


def extract_tenant_slug(host: str | None, base_domain: str = APP_BASE_DOMAIN) -> str | None:
    """Return the tenant slug carried by ``host`` or ``None``.

    Only a single label directly under the base domain names a tenant;
    "a.b.<base>" resolves to no tenant. The base domain must match on a
    label boundary, so "evil<base>" is not a subdomain of "<base>".
    """
    normalized_host = normalize_host(host)
    base = normalize_base_domain(base_domain)
    if not normalized_host or not base:
        return None

    suffix = f".{base}"
    if not normalized_host.endswith(suffix):
        return None

    subdomain = normalized_host[: -len(suffix)]
    if not subdomain or "." in subdomain:
        return None

    if is_reserved_subdomain(subdomain):
        return None

    if not matches_slug_grammar(subdomain):
        return None

    return subdomain


def resolve_tenant_slug_from_request(
    headers: Mapping[str, str], base_domain: str = APP_BASE_DOMAIN
) -> str | None:
    """Trusted edge header first, Host header second.

    The edge middleware strips client-supplied copies of the trusted header,
    so a value present here was set by the router itself.
    """
    tenant_header = headers.get(TENANT_HEADER)
    if tenant_header:
        return tenant_header
    return extract_tenant_slug(headers.get("host"), base_domain)


def build_tenant_url(slug: str, path: str = "/", base_domain: str = APP_BASE_DOMAIN) -> str:
    protocol = "https" if COOKIE_SECURE else "http"
    normalized_path = path if path.startswith("/") else f"/{path}"
    return f"{protocol}://{slug}.{normalize_base_domain(base_domain)}{normalized_path}"


def tenant_public_url(slug: str, base_domain: str = APP_BASE_DOMAIN, app_url: str = APP_URL) -> str:
    """Public menu URL; dev deployments with an explicit port keep it."""
    base = normalize_base_domain(base_domain)
    port = urlsplit(app_url).port if app_url else None
    if IS_DEV and port:
        return f"http://{slug}.{base}:{port}/"
    return f"https://{slug}.{base}/"
