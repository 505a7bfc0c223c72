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
Internal data models for the coreason-keycloak package.
These are not exposed in the public API.
"""

from pydantic import BaseModel, ConfigDict, Field


class DiscoveryDocument(BaseModel):
    """
    OIDC Configuration from .well-known/openid-configuration.

    Only the fields the strategy consumes are modelled; missing endpoints are tolerated.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    issuer: str | None = Field(default=None, description="The OIDC issuer URL.")
    authorization_endpoint: str | None = Field(default=None, description="The authorization endpoint URL.")
    token_endpoint: str | None = Field(default=None, description="The token endpoint URL.")
    userinfo_endpoint: str | None = Field(default=None, description="The userinfo endpoint URL.")
    end_session_endpoint: str | None = Field(default=None, description="The logout endpoint URL.")
    jwks_uri: str | None = Field(default=None, description="The URL to the JWKS.")
