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
Custom exceptions for the coreason-keycloak package.
"""


class CoreasonKeycloakError(Exception):
    """Base exception for all coreason-keycloak errors."""


class ConfigurationError(CoreasonKeycloakError):
    """
    Raised when the provider configuration is structurally invalid.

    Always raised before any network request, regardless of `raise_on_failure`.
    """


class IntegrationError(CoreasonKeycloakError):
    """
    Raised when the discovery or JWKS endpoint does not respond successfully.

    Only raised when `raise_on_failure` is enabled.

    Attributes:
        status_code (int | None): The HTTP status code, if a response was received.
        url (str | None): The URL that was requested.
    """

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class OversizedResponseError(IntegrationError):
    """Raised when an HTTP response is too large."""
