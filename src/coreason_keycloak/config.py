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
Configuration for the coreason-keycloak package.
"""

from collections.abc import Callable
from typing import Any
from urllib.parse import urlsplit

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderConfig(BaseSettings):
    """
    Settings needed to discover a Keycloak realm's endpoints.

    Attributes:
        site (str | None): The Keycloak base URL (e.g. https://sso.example.org).
        realm (str | None): The realm name.
        base_url (str | None): Path prefix inserted before `/realms/{realm}`. Empty means none.
        raise_on_failure (bool): Raise IntegrationError on discovery/JWKS failures instead of degrading.
        setup_override (Callable | None): Invoked instead of network discovery. Not loaded from env.
        test_mode (bool): Skip all network calls and use the conventional Keycloak paths.
        http_timeout (float): Timeout in seconds for IdP network operations.
        max_response_bytes (int): Upper bound on discovery and JWKS response sizes.
        unsafe_local_dev (bool): Allow plain HTTP sites for local testing.
    """

    model_config = SettingsConfigDict(
        env_prefix="COREASON_KEYCLOAK_",
        case_sensitive=False,
        frozen=True,
    )

    site: str | None = None
    realm: str | None = None
    base_url: str | None = None
    raise_on_failure: bool = False
    setup_override: Callable[..., Any] | None = Field(default=None, exclude=True)
    test_mode: bool = False
    http_timeout: float = Field(default=10.0, gt=0, description="Timeout in seconds for all IdP network operations.")
    max_response_bytes: int = Field(default=1024 * 1024, gt=0)
    unsafe_local_dev: bool = False

    @field_validator("site")
    @classmethod
    def validate_site(cls, v: str | None) -> str | None:
        """
        Ensures site is an absolute http(s) URL.

        Args:
            v: The raw site value.

        Returns:
            The stripped site string.

        Raises:
            ValueError: If the site has no scheme or host.
        """
        if v is None:
            return v
        v = v.strip()
        parts = urlsplit(v)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"site must be an absolute http(s) URL, got '{v}'")
        return v

    @field_validator("realm", "base_url")
    @classmethod
    def strip_whitespace(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else v

    @model_validator(mode="after")
    def validate_required(self) -> "ProviderConfig":
        """
        Requires site and realm unless discovery is overridden, and HTTPS outside local dev.
        """
        if self.setup_override is None:
            missing = [name for name in ("site", "realm") if not getattr(self, name)]
            if missing:
                raise ValueError(f"Missing required settings: {', '.join(missing)}")

        if self.site and self.site.startswith("http://") and not self.unsafe_local_dev:
            raise ValueError("HTTPS is required for production. Set 'unsafe_local_dev=True' only for local testing.")
        return self


class ClientConfig(ProviderConfig):
    """
    Provider settings plus the OAuth2 client credentials used by the strategy.

    Attributes:
        client_id (str): The OIDC Client ID.
        client_secret (SecretStr | None): The client secret. None for public clients.
        redirect_uri (str | None): The callback URL registered in Keycloak.
        scope (str): Scopes requested on the authorization redirect.
        authorize_options (list[str]): Request parameters forwarded to the authorization redirect.
    """

    client_id: str
    client_secret: SecretStr | None = None
    redirect_uri: str | None = None
    scope: str = "openid"
    authorize_options: list[str] = Field(default_factory=lambda: ["scope", "kc_idp_hint"])

    @field_validator("client_id")
    @classmethod
    def validate_client_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("client_id must not be empty")
        return v
