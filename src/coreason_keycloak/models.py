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
Data models for the coreason-keycloak package.
"""

from typing import Any

from authlib.jose import JsonWebKey
from authlib.jose import KeySet as JoseKeySet
from pydantic import BaseModel, ConfigDict, Field


class KeySet(BaseModel):
    """
    The provider's JSON Web Key Set, in the order it was published.

    Keys are kept as raw JWK dictionaries; verification is left to the host.
    """

    model_config = ConfigDict(frozen=True)

    keys: list[dict[str, Any]] = Field(default_factory=list, description="Raw JWK objects.")

    def __len__(self) -> int:
        return len(self.keys)

    @property
    def is_empty(self) -> bool:
        return not self.keys

    def to_authlib(self) -> JoseKeySet:
        """
        Imports the keys into an authlib key set for token verification.

        Returns:
            authlib.jose.KeySet: The imported key set.

        Raises:
            ValueError: If the keys are not valid JWKs.
        """
        return JsonWebKey.import_key_set({"keys": self.keys})


class ResolvedEndpoints(BaseModel):
    """
    Endpoint paths resolved from discovery.

    Paths carry no scheme, host or port; the host combines them with its own site.
    """

    model_config = ConfigDict(frozen=True)

    authorize_path: str = Field(..., examples=["/realms/example/protocol/openid-connect/auth"])
    token_path: str = Field(..., examples=["/realms/example/protocol/openid-connect/token"])
    userinfo_path: str | None = Field(default=None, examples=["/realms/example/protocol/openid-connect/userinfo"])
    end_session_path: str | None = Field(default=None, examples=["/realms/example/protocol/openid-connect/logout"])


class DiscoveryResult(BaseModel):
    """
    Outcome of a discovery resolution.

    Attributes:
        endpoints (ResolvedEndpoints | None): The resolved paths, or None if discovery failed silently.
        key_set (KeySet): The provider keys. Empty if the JWKS was not fetched.
        discovery_url (str | None): The discovery document URL. None when discovery was bypassed.
        issuer (str | None): The issuer advertised by the discovery document.
    """

    model_config = ConfigDict(frozen=True)

    endpoints: ResolvedEndpoints | None = None
    key_set: KeySet = Field(default_factory=KeySet)
    discovery_url: str | None = None
    issuer: str | None = None

    @property
    def is_resolved(self) -> bool:
        return self.endpoints is not None


class SetupAborted(BaseModel):
    """
    Returned by a setup override to stop the setup phase explicitly.

    The strategy hands it back to the caller untouched.
    """

    model_config = ConfigDict(frozen=True)

    reason: str
    detail: dict[str, Any] = Field(default_factory=dict)


SetupOutcome = DiscoveryResult | SetupAborted


class AuthorizationRequest(BaseModel):
    """
    The authorization redirect built by the request phase.

    Attributes:
        url (str): The absolute URL to redirect the user agent to.
        state (str): The CSRF state bound to this request.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    state: str


class AuthInfo(BaseModel):
    """
    Normalized user information derived from the userinfo response.
    """

    model_config = ConfigDict(frozen=True)

    uid: str = Field(..., description="The immutable subject ID ('sub').")
    name: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    nickname: str | None = None
    raw_info: dict[str, Any] = Field(default_factory=dict, repr=False)

    def __repr__(self) -> str:
        # PII fields are redacted
        return f"AuthInfo(uid={self.uid!r}, name='<REDACTED>', email='<REDACTED>')"

    def __str__(self) -> str:
        return self.__repr__()
