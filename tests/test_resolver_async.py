# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_keycloak

from typing import Any
from unittest.mock import AsyncMock

import pytest
from conftest import CERTS_URL, DISCOVERY_URL, REALM, SITE, StubIdP, discovery_body

from coreason_keycloak.config import ProviderConfig
from coreason_keycloak.exceptions import ConfigurationError, IntegrationError
from coreason_keycloak.models import SetupAborted
from coreason_keycloak.resolver import DiscoveryResolver, DiscoveryResolverAsync


def _config(**kwargs: Any) -> ProviderConfig:
    kwargs.setdefault("site", SITE)
    kwargs.setdefault("realm", REALM)
    return ProviderConfig(**kwargs)


async def _resolve(idp: StubIdP, config: ProviderConfig) -> Any:
    async with idp.async_client() as client:
        return await DiscoveryResolverAsync(client).resolve(config)


@pytest.mark.asyncio
async def test_async_matches_sync(keycloak: StubIdP) -> None:
    config = _config()
    async_result = await _resolve(keycloak, config)
    with keycloak.client() as client:
        sync_result = DiscoveryResolver(client).resolve(config)

    assert async_result == sync_result
    assert async_result.endpoints.authorize_path == "/realms/example-realm/protocol/openid-connect/auth"
    assert async_result.key_set.keys[0]["kty"] == "RSA"


@pytest.mark.asyncio
async def test_async_test_mode_makes_no_requests(idp: StubIdP) -> None:
    result = await _resolve(idp, _config(test_mode=True))
    assert idp.requests == []
    assert result.endpoints.token_path == "/realms/example-realm/protocol/openid-connect/token"


@pytest.mark.asyncio
async def test_async_override_is_awaited(idp: StubIdP) -> None:
    aborted = SetupAborted(reason="halt", detail={"step": "setup"})
    override = AsyncMock(return_value=aborted)

    result = await _resolve(idp, _config(setup_override=override))

    assert result is aborted
    override.assert_awaited_once()
    assert idp.requests == []


@pytest.mark.asyncio
async def test_async_sync_override_is_returned(idp: StubIdP) -> None:
    aborted = SetupAborted(reason="halt")
    result = await _resolve(idp, ProviderConfig(setup_override=lambda config: aborted))
    assert result is aborted


@pytest.mark.asyncio
async def test_async_relative_base_url(idp: StubIdP) -> None:
    with pytest.raises(ConfigurationError):
        await _resolve(idp, _config(base_url="relative-url"))
    assert idp.requests == []


@pytest.mark.asyncio
async def test_async_discovery_404(idp: StubIdP) -> None:
    idp.add(DISCOVERY_URL, status_code=404)

    with pytest.raises(IntegrationError) as exc:
        await _resolve(idp, _config(raise_on_failure=True))
    assert exc.value.status_code == 404

    result = await _resolve(idp, _config())
    assert result.endpoints is None


@pytest.mark.asyncio
async def test_async_certs_404(idp: StubIdP) -> None:
    idp.add(DISCOVERY_URL, json_body=discovery_body())
    idp.add(CERTS_URL, status_code=404)

    with pytest.raises(IntegrationError):
        await _resolve(idp, _config(raise_on_failure=True))

    result = await _resolve(idp, _config())
    assert result.is_resolved
    assert result.key_set.is_empty


@pytest.mark.asyncio
async def test_async_deeply_nested_body(idp: StubIdP) -> None:
    idp.add(DISCOVERY_URL, content=b"[" * 100_000 + b"]" * 100_000)

    with pytest.raises(IntegrationError, match="not valid JSON"):
        await _resolve(idp, _config(raise_on_failure=True))

    result = await _resolve(idp, _config())
    assert result.endpoints is None
