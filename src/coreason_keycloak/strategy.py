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
KeycloakStrategy component exposing discovery results to the host framework.
"""

from collections.abc import Mapping
from typing import Any
from urllib.parse import urljoin

import httpx
from authlib.integrations.httpx_client import OAuth2Client
from authlib.integrations.base_client.errors import OAuthError
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from coreason_keycloak.config import ClientConfig
from coreason_keycloak.discovery import site_origin
from coreason_keycloak.exceptions import ConfigurationError, CoreasonKeycloakError, IntegrationError
from coreason_keycloak.models import (
    AuthInfo,
    AuthorizationRequest,
    DiscoveryResult,
    SetupOutcome,
)
from coreason_keycloak.resolver import DiscoveryResolver
from coreason_keycloak.utils.logger import logger


class KeycloakStrategy:
    """
    Authorization-code login against a Keycloak realm.

    The host calls `setup_phase` once per authentication attempt, then reads
    `authorize_url`, `token_url` and `certs`, and drives `request_phase` and
    `callback_phase`. Handles resources via context manager.

    Attributes:
        config (ClientConfig): The client configuration.
        resolver (DiscoveryResolver): The resolver used by `setup_phase`.
        oauth (OAuth2Client): The authlib client used for the authorization-code flow.
    """

    name = "keycloak"

    def __init__(self, config: ClientConfig, transport: httpx.BaseTransport | None = None) -> None:
        """
        Initialize the KeycloakStrategy.

        Args:
            config: The configuration object.
            transport: Optional httpx transport shared by discovery and OAuth2 requests.
        """
        self.config = config
        self._http = httpx.Client(transport=transport, timeout=config.http_timeout, follow_redirects=True)
        self.oauth = OAuth2Client(
            client_id=config.client_id,
            client_secret=config.client_secret.get_secret_value() if config.client_secret else None,
            token_endpoint_auth_method="client_secret_basic" if config.client_secret else "none",
            scope=config.scope,
            redirect_uri=config.redirect_uri,
            transport=transport,
            timeout=config.http_timeout,
        )

        # Instrument the clients for distributed tracing
        HTTPXClientInstrumentor().instrument_client(self._http)
        HTTPXClientInstrumentor().instrument_client(self.oauth)

        self.resolver = DiscoveryResolver(self._http)
        self._result = DiscoveryResult()

    def __enter__(self) -> "KeycloakStrategy":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()
        self.oauth.close()

    def setup_phase(self) -> SetupOutcome:
        """
        Resolves the realm's endpoints and keys, replacing any previous result.

        Returns:
            DiscoveryResult | SetupAborted: The resolver's outcome, unmodified.

        Raises:
            ConfigurationError: If the configuration is structurally invalid.
            IntegrationError: If discovery fails and `raise_on_failure` is set.
        """
        self._result = DiscoveryResult()
        outcome = self.resolver.resolve(self.config)
        if isinstance(outcome, DiscoveryResult):
            self._result = outcome
        else:
            logger.info(f"Setup phase ended by override: {outcome!r}")
        return outcome

    @property
    def discovery(self) -> DiscoveryResult:
        return self._result

    @property
    def authorize_url(self) -> str | None:
        endpoints = self._result.endpoints
        return endpoints.authorize_path if endpoints else None

    @property
    def token_url(self) -> str | None:
        endpoints = self._result.endpoints
        return endpoints.token_path if endpoints else None

    @property
    def userinfo_url(self) -> str | None:
        endpoints = self._result.endpoints
        return endpoints.userinfo_path if endpoints else None

    @property
    def logout_url(self) -> str | None:
        endpoints = self._result.endpoints
        return endpoints.end_session_path if endpoints else None

    @property
    def certs(self) -> list[dict[str, Any]]:
        """The JWKs published by the realm, in order. Empty if unavailable."""
        return list(self._result.key_set.keys)

    def absolute_url(self, path: str) -> str:
        """
        Joins a resolved path with the configured site origin.

        Raises:
            ConfigurationError: If no site is configured.
        """
        if not self.config.site:
            raise ConfigurationError("site is required to build absolute endpoint URLs")
        return urljoin(site_origin(self.config.site), path)

    def request_phase(self, params: Mapping[str, str] | None = None, state: str | None = None) -> AuthorizationRequest:
        """
        Builds the authorization redirect.

        Request parameters listed in `authorize_options` (e.g. `kc_idp_hint`) are
        forwarded to Keycloak.

        Args:
            params: The incoming request's query parameters.
            state: Optional CSRF state. Generated if omitted.

        Returns:
            AuthorizationRequest: The redirect URL and its state.

        Raises:
            CoreasonKeycloakError: If the authorization endpoint is not resolved.
        """
        if self.authorize_url is None:
            raise CoreasonKeycloakError("Authorization endpoint is not resolved. Run setup_phase first.")

        params = params or {}
        extra = {key: params[key] for key in self.config.authorize_options if params.get(key)}

        url, state = self.oauth.create_authorization_url(self.absolute_url(self.authorize_url), state=state, **extra)
        logger.debug(f"Built authorization redirect with options {sorted(extra)}")
        return AuthorizationRequest(url=url, state=state)

    def callback_phase(self, code: str, state: str | None = None) -> dict[str, Any]:
        """
        Exchanges the authorization code at the resolved token endpoint.

        Args:
            code: The authorization code from the callback request.
            state: The state returned by Keycloak.

        Returns:
            dict[str, Any]: The token response.

        Raises:
            CoreasonKeycloakError: If the token endpoint is not resolved.
            IntegrationError: If the token request fails.
        """
        if self.token_url is None:
            raise CoreasonKeycloakError("Token endpoint is not resolved. Run setup_phase first.")

        token_url = self.absolute_url(self.token_url)
        try:
            token = self.oauth.fetch_token(token_url, code=code, state=state)
        except OAuthError as e:
            raise IntegrationError(f"Token exchange failed: {e.error}", url=token_url) from e
        except (httpx.HTTPError, ValueError) as e:
            raise IntegrationError(f"Token exchange failed: {e}", url=token_url) from e

        logger.info("Authorization code exchanged for tokens")
        return dict(token)

    def fetch_raw_info(self, token: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """
        Fetches the userinfo claims with the access token.

        Args:
            token: The token to use. Defaults to the token obtained in `callback_phase`.

        Returns:
            dict[str, Any]: The userinfo claims.

        Raises:
            CoreasonKeycloakError: If the userinfo endpoint is not resolved or no token is available.
            IntegrationError: If the userinfo request fails.
        """
        if self.userinfo_url is None:
            raise CoreasonKeycloakError("Userinfo endpoint is not resolved. Run setup_phase first.")
        if token is not None:
            self.oauth.token = dict(token)
        if not self.oauth.token:
            raise CoreasonKeycloakError("No access token available for the userinfo request.")

        userinfo_url = self.absolute_url(self.userinfo_url)
        try:
            response = self.oauth.get(userinfo_url)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise IntegrationError(
                f"Userinfo request failed: {e}", status_code=e.response.status_code, url=userinfo_url
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise IntegrationError(f"Userinfo request failed: {e}", url=userinfo_url) from e

        if not isinstance(data, dict):
            raise IntegrationError("Userinfo response is not a JSON object", url=userinfo_url)
        return data

    def auth_info(self, raw_info: Mapping[str, Any]) -> AuthInfo:
        """
        Maps userinfo claims onto AuthInfo.

        Raises:
            CoreasonKeycloakError: If the 'sub' claim is missing.
        """
        sub = raw_info.get("sub")
        if not sub:
            raise CoreasonKeycloakError("Userinfo response does not contain 'sub'")

        return AuthInfo(
            uid=str(sub),
            name=raw_info.get("name"),
            email=raw_info.get("email"),
            first_name=raw_info.get("given_name"),
            last_name=raw_info.get("family_name"),
            nickname=raw_info.get("preferred_username"),
            raw_info=dict(raw_info),
        )
