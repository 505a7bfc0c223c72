# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_keycloak

"""
URL derivation for Keycloak OIDC discovery.

Keycloak publishes one discovery document per realm under
`{origin}{base_url}/realms/{realm}/.well-known/openid-configuration`.
"""

from urllib.parse import quote, urlsplit, urlunsplit

from coreason_keycloak.config import ProviderConfig
from coreason_keycloak.exceptions import ConfigurationError
from coreason_keycloak.models import ResolvedEndpoints
from coreason_keycloak.models_internal import DiscoveryDocument

DISCOVERY_PATH = "/.well-known/openid-configuration"
OIDC_PROTOCOL_PATH = "/protocol/openid-connect"


def site_origin(site: str) -> str:
    """
    Returns the scheme and authority of the site, without path or trailing slash.

    Args:
        site: An absolute URL.

    Returns:
        str: e.g. "https://example.org:8443".
    """
    parts = urlsplit(site)
    return urlunsplit((parts.scheme, parts.netloc, "", "", ""))


def derive_base_path(config: ProviderConfig) -> str:
    """
    Computes the realm-scoped base path, e.g. "/realms/example" or "/auth/realms/example".

    Args:
        config: The provider configuration. `site` and `realm` must be set.

    Returns:
        str: The base path, always starting with a single "/".

    Raises:
        ConfigurationError: If `base_url` is relative, or if the site uses the legacy
            "/auth" path without an explicit `base_url`.
    """
    if not config.site or not config.realm:
        raise ConfigurationError("site and realm are required for discovery")

    base_url = config.base_url or ""
    if base_url and not base_url.startswith("/"):
        raise ConfigurationError(f"base_url must be an absolute path, got '{base_url}'")

    site_path = urlsplit(config.site).path.rstrip("/")
    if not base_url and site_path.endswith("/auth"):
        raise ConfigurationError(
            f"Site '{config.site}' ends with '/auth'. Remove it from the site or set base_url='/auth' explicitly."
        )

    prefix = base_url.strip("/")
    prefix = f"/{prefix}" if prefix else ""
    return f"{prefix}/realms/{quote(config.realm, safe='')}"


def build_discovery_url(site: str, base_path: str) -> str:
    """
    Builds the discovery document URL from the site origin and a derived base path.

    Args:
        site: The configured site. Only its origin is used.
        base_path: The result of `derive_base_path`.
    """
    return f"{site_origin(site)}{base_path}{DISCOVERY_PATH}"


def strip_to_path(url: str) -> str:
    """
    Drops scheme, host and port from an absolute URL, keeping path and query.

    Args:
        url: An absolute URL or a path.

    Returns:
        str: The path component ("/" if empty), with the query string if present.
    """
    parts = urlsplit(url)
    path = parts.path or "/"
    if parts.query:
        path = f"{path}?{parts.query}"
    return path


def default_endpoints(base_path: str) -> ResolvedEndpoints:
    """
    The conventional Keycloak endpoint paths below a realm base path.
    """
    protocol = f"{base_path}{OIDC_PROTOCOL_PATH}"
    return ResolvedEndpoints(
        authorize_path=f"{protocol}/auth",
        token_path=f"{protocol}/token",
        userinfo_path=f"{protocol}/userinfo",
        end_session_path=f"{protocol}/logout",
    )


def endpoints_from_document(document: DiscoveryDocument, base_path: str) -> ResolvedEndpoints:
    """
    Converts the advertised endpoints to paths.

    Endpoints missing from the document fall back to the conventional Keycloak path.
    """
    defaults = default_endpoints(base_path)

    def _path(url: str | None, fallback: str | None) -> str | None:
        return strip_to_path(url) if url else fallback

    return ResolvedEndpoints(
        authorize_path=_path(document.authorization_endpoint, defaults.authorize_path),  # type: ignore[arg-type]
        token_path=_path(document.token_endpoint, defaults.token_path),  # type: ignore[arg-type]
        userinfo_path=_path(document.userinfo_endpoint, defaults.userinfo_path),
        end_session_path=_path(document.end_session_endpoint, defaults.end_session_path),
    )
