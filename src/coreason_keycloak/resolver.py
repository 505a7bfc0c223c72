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
Discovery Resolver component for resolving a realm's endpoints and JWKS.
"""

import inspect
from contextlib import nullcontext
from typing import Any

import httpx
from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode
from pydantic import ValidationError

from coreason_keycloak.config import ProviderConfig
from coreason_keycloak.discovery import (
    build_discovery_url,
    default_endpoints,
    derive_base_path,
    endpoints_from_document,
)
from coreason_keycloak.exceptions import IntegrationError
from coreason_keycloak.models import DiscoveryResult, KeySet, SetupOutcome
from coreason_keycloak.models_internal import DiscoveryDocument
from coreason_keycloak.transport import fetch_json, fetch_json_async
from coreason_keycloak.utils.logger import logger

tracer = trace.get_tracer(__name__)


def _parse_document(data: Any, url: str) -> DiscoveryDocument:
    if not isinstance(data, dict):
        raise IntegrationError(f"Discovery document from {url} is not a JSON object", url=url)
    try:
        return DiscoveryDocument.model_validate(data)
    except ValidationError as e:
        raise IntegrationError(f"Invalid discovery document from {url}: {e}", url=url) from e


def _parse_key_set(data: Any, url: str) -> KeySet:
    keys = data.get("keys") if isinstance(data, dict) else None
    if not isinstance(keys, list) or not all(isinstance(key, dict) for key in keys):
        raise IntegrationError(f"JWKS from {url} does not contain a 'keys' list", url=url)
    return KeySet(keys=keys)


def _handle_failure(config: ProviderConfig, error: IntegrationError, span: Span) -> None:
    """
    Applies the failure policy: raise if `raise_on_failure`, otherwise log and degrade.
    """
    span.record_exception(error)
    span.set_status(Status(StatusCode.ERROR, str(error)))
    if config.raise_on_failure:
        logger.error(f"Keycloak discovery failed: {error}")
        raise error
    logger.warning(f"Keycloak discovery failed, continuing without it: {error}")


def _bypass(config: ProviderConfig, base_path: str) -> DiscoveryResult:
    logger.debug(f"Test mode enabled, using default endpoints for realm '{config.realm}'")
    return DiscoveryResult(endpoints=default_endpoints(base_path))


class DiscoveryResolver:
    """
    Resolves a Keycloak realm's endpoint paths and key set.

    Performs at most two sequential GET requests per resolution (discovery document,
    then JWKS). Nothing is cached between resolutions.

    Attributes:
        client (httpx.Client | None): Shared client. If None, a transient client is created per resolution.
    """

    def __init__(self, client: httpx.Client | None = None) -> None:
        self.client = client

    def _client_for(self, config: ProviderConfig) -> Any:
        if self.client is not None:
            return nullcontext(self.client)
        return httpx.Client(timeout=config.http_timeout, follow_redirects=True)

    def resolve(self, config: ProviderConfig) -> SetupOutcome:
        """
        Resolves the endpoints for the given configuration.

        Args:
            config: The provider configuration.

        Returns:
            DiscoveryResult | SetupAborted: The result, or whatever the setup override returned.

        Raises:
            ConfigurationError: If `base_url` or `site` is structurally invalid.
            IntegrationError: If a fetch fails and `raise_on_failure` is set.
        """
        if config.setup_override is not None:
            logger.debug("Setup override configured, skipping discovery")
            return config.setup_override(config)  # type: ignore[no-any-return]

        base_path = derive_base_path(config)
        if config.test_mode:
            return _bypass(config, base_path)

        discovery_url = build_discovery_url(config.site, base_path)  # type: ignore[arg-type]
        with tracer.start_as_current_span("keycloak.discovery") as span:
            span.set_attribute("keycloak.realm", config.realm or "")
            span.set_attribute("keycloak.discovery_url", discovery_url)

            with self._client_for(config) as client:
                try:
                    data = fetch_json(client, discovery_url, config.max_response_bytes)
                    document = _parse_document(data, discovery_url)
                except IntegrationError as e:
                    _handle_failure(config, e, span)
                    return DiscoveryResult(discovery_url=discovery_url)

                endpoints = endpoints_from_document(document, base_path)

                key_set = KeySet()
                if document.jwks_uri:
                    try:
                        data = fetch_json(client, document.jwks_uri, config.max_response_bytes)
                        key_set = _parse_key_set(data, document.jwks_uri)
                    except IntegrationError as e:
                        _handle_failure(config, e, span)
                else:
                    logger.warning(f"Discovery document at {discovery_url} has no jwks_uri")

            span.set_attribute("keycloak.key_count", len(key_set))

        logger.info(f"Resolved Keycloak endpoints for realm '{config.realm}' ({len(key_set)} keys)")
        return DiscoveryResult(
            endpoints=endpoints,
            key_set=key_set,
            discovery_url=discovery_url,
            issuer=document.issuer,
        )


class DiscoveryResolverAsync:
    """
    Async implementation of DiscoveryResolver.

    Attributes:
        client (httpx.AsyncClient | None): Shared client. If None, a transient client is created per resolution.
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self.client = client

    def _client_for(self, config: ProviderConfig) -> Any:
        if self.client is not None:
            return nullcontext(self.client)
        return httpx.AsyncClient(timeout=config.http_timeout, follow_redirects=True)

    async def resolve(self, config: ProviderConfig) -> SetupOutcome:
        """
        Resolves the endpoints for the given configuration.

        An awaitable returned by the setup override is awaited.

        Raises:
            ConfigurationError: If `base_url` or `site` is structurally invalid.
            IntegrationError: If a fetch fails and `raise_on_failure` is set.
        """
        if config.setup_override is not None:
            logger.debug("Setup override configured, skipping discovery")
            outcome = config.setup_override(config)
            if inspect.isawaitable(outcome):
                outcome = await outcome
            return outcome  # type: ignore[no-any-return]

        base_path = derive_base_path(config)
        if config.test_mode:
            return _bypass(config, base_path)

        discovery_url = build_discovery_url(config.site, base_path)  # type: ignore[arg-type]
        with tracer.start_as_current_span("keycloak.discovery") as span:
            span.set_attribute("keycloak.realm", config.realm or "")
            span.set_attribute("keycloak.discovery_url", discovery_url)

            async with self._client_for(config) as client:
                try:
                    data = await fetch_json_async(client, discovery_url, config.max_response_bytes)
                    document = _parse_document(data, discovery_url)
                except IntegrationError as e:
                    _handle_failure(config, e, span)
                    return DiscoveryResult(discovery_url=discovery_url)

                endpoints = endpoints_from_document(document, base_path)

                key_set = KeySet()
                if document.jwks_uri:
                    try:
                        data = await fetch_json_async(client, document.jwks_uri, config.max_response_bytes)
                        key_set = _parse_key_set(data, document.jwks_uri)
                    except IntegrationError as e:
                        _handle_failure(config, e, span)
                else:
                    logger.warning(f"Discovery document at {discovery_url} has no jwks_uri")

            span.set_attribute("keycloak.key_count", len(key_set))

        logger.info(f"Resolved Keycloak endpoints for realm '{config.realm}' ({len(key_set)} keys)")
        return DiscoveryResult(
            endpoints=endpoints,
            key_set=key_set,
            discovery_url=discovery_url,
            issuer=document.issuer,
        )
