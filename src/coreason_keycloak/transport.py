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
Bounded JSON fetching over httpx.

Every failure mode (network error, non-2xx status, oversized or non-JSON body)
is reported as an IntegrationError so callers apply one failure policy.
"""

import json
from typing import Any

import httpx

from coreason_keycloak.exceptions import IntegrationError, OversizedResponseError
from coreason_keycloak.utils.logger import logger

JSON_HEADERS = {"Accept": "application/json"}


def _check_response(response: httpx.Response, url: str, max_bytes: int) -> None:
    if not response.is_success:
        raise IntegrationError(
            f"GET {url} returned HTTP {response.status_code}",
            status_code=response.status_code,
            url=url,
        )

    content_length = response.headers.get("Content-Length")
    if content_length and content_length.isdigit() and int(content_length) > max_bytes:
        raise OversizedResponseError(
            f"Response from {url} exceeds {max_bytes} bytes (Content-Length: {content_length})",
            status_code=response.status_code,
            url=url,
        )


def _decode(body: bytes, url: str, status_code: int) -> Any:
    try:
        return json.loads(body)
    except (ValueError, RecursionError) as e:
        raise IntegrationError(f"Response from {url} is not valid JSON: {e}", status_code=status_code, url=url) from e


def fetch_json(client: httpx.Client, url: str, max_bytes: int) -> Any:
    """
    Performs a GET request and decodes the JSON body.

    The body is streamed and aborted once it exceeds `max_bytes`.

    Args:
        client: The HTTP client to use.
        url: The URL to fetch.
        max_bytes: Maximum accepted body size.

    Returns:
        Any: The decoded JSON value.

    Raises:
        IntegrationError: On network failure, non-2xx status or invalid JSON.
        OversizedResponseError: If the body exceeds `max_bytes`.
    """
    logger.debug(f"Fetching {url}")
    try:
        with client.stream("GET", url, headers=JSON_HEADERS) as response:
            _check_response(response, url, max_bytes)
            body = bytearray()
            for chunk in response.iter_bytes():
                body.extend(chunk)
                if len(body) > max_bytes:
                    raise OversizedResponseError(
                        f"Response from {url} exceeds {max_bytes} bytes",
                        status_code=response.status_code,
                        url=url,
                    )
            status_code = response.status_code
    except httpx.HTTPError as e:
        raise IntegrationError(f"GET {url} failed: {e}", url=url) from e

    return _decode(bytes(body), url, status_code)


async def fetch_json_async(client: httpx.AsyncClient, url: str, max_bytes: int) -> Any:
    """
    Async counterpart of `fetch_json`.

    Raises:
        IntegrationError: On network failure, non-2xx status or invalid JSON.
        OversizedResponseError: If the body exceeds `max_bytes`.
    """
    logger.debug(f"Fetching {url}")
    try:
        async with client.stream("GET", url, headers=JSON_HEADERS) as response:
            _check_response(response, url, max_bytes)
            body = bytearray()
            async for chunk in response.aiter_bytes():
                body.extend(chunk)
                if len(body) > max_bytes:
                    raise OversizedResponseError(
                        f"Response from {url} exceeds {max_bytes} bytes",
                        status_code=response.status_code,
                        url=url,
                    )
            status_code = response.status_code
    except httpx.HTTPError as e:
        raise IntegrationError(f"GET {url} failed: {e}", url=url) from e

    return _decode(bytes(body), url, status_code)
