# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_keycloak

import json
from typing import Any

import httpx
import pytest

SITE = "https://example.org/"
REALM = "example-realm"
REALM_URL = "https://example.org/realms/example-realm"
DISCOVERY_URL = f"{REALM_URL}/.well-known/openid-configuration"
CERTS_URL = f"{REALM_URL}/protocol/openid-connect/certs"
TOKEN_URL = f"{REALM_URL}/protocol/openid-connect/token"
USERINFO_URL = f"{REALM_URL}/protocol/openid-connect/userinfo"


def discovery_body(realm_url: str = REALM_URL) -> dict[str, Any]:
    """A Keycloak discovery document for the given realm URL."""
    oidc = f"{realm_url}/protocol/openid-connect"
    return {
        "issuer": realm_url,
        "authorization_endpoint": f"{oidc}/auth",
        "token_endpoint": f"{oidc}/token",
        "token_introspection_endpoint": f"{oidc}/token/introspect",
        "userinfo_endpoint": f"{oidc}/userinfo",
        "end_session_endpoint": f"{oidc}/logout",
        "jwks_uri": f"{oidc}/certs",
        "check_session_iframe": f"{oidc}/login-status-iframe.html",
        "grant_types_supported": ["authorization_code", "implicit", "refresh_token", "password", "client_credentials"],
        "response_types_supported": ["code", "none", "id_token", "token", "id_token token"],
        "subject_types_supported": ["public", "pairwise"],
        "id_token_signing_alg_values_supported": ["RS256"],
        "scopes_supported": ["openid", "offline_access"],
        "claims_parameter_supported": False,
    }


CERTS_BODY = {"keys": [{"kty": "RSA", "kid": "first"}, {"kty": "EC", "kid": "second"}]}


class StubIdP:
    """
    Routes requests to canned responses and records every request made.

    Unrouted requests get a 404.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        url: str,
        status_code: int = 200,
        json_body: Any = None,
        content: bytes | None = None,
        method: str = "GET",
    ) -> None:
        if content is None:
            content = json.dumps(json_body).encode() if json_body is not None else b""
        self.routes[(method, url)] = (status_code, content)

    def add_error(self, url: str, error: Exception, method: str = "GET") -> None:
        self.routes[(method, url)] = error

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, str(request.url)))
        if route is None:
            return httpx.Response(404)
        if isinstance(route, Exception):
            raise route
        status_code, content = route
        return httpx.Response(status_code, content=content, headers={"Content-Type": "application/json"})

    def requested(self, url: str, method: str = "GET") -> int:
        return sum(1 for r in self.requests if r.method == method and str(r.url) == url)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=self.transport)

    def async_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport)


@pytest.fixture
def idp() -> StubIdP:
    return StubIdP()


@pytest.fixture
def keycloak(idp: StubIdP) -> StubIdP:
    """A stub IdP serving a healthy realm."""
    idp.add(DISCOVERY_URL, json_body=discovery_body())
    idp.add(CERTS_URL, json_body=CERTS_BODY)
    return idp
