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
Keycloak login strategy resolving realm endpoints through OpenID Connect discovery.
"""

__version__ = "0.1.0"
__author__ = "Gowtham A Rao"
__email__ = "gowtham.rao@coreason.ai"

from .config import ClientConfig, ProviderConfig
from .exceptions import ConfigurationError, CoreasonKeycloakError, IntegrationError
from .models import DiscoveryResult, KeySet, ResolvedEndpoints, SetupAborted
from .resolver import DiscoveryResolver, DiscoveryResolverAsync
from .strategy import KeycloakStrategy

__all__ = [
    "ClientConfig",
    "ConfigurationError",
    "CoreasonKeycloakError",
    "DiscoveryResolver",
    "DiscoveryResolverAsync",
    "DiscoveryResult",
    "IntegrationError",
    "KeySet",
    "KeycloakStrategy",
    "ProviderConfig",
    "ResolvedEndpoints",
    "SetupAborted",
]
