"""
OAuth provider implementations.

BUILT_IN_PROVIDERS maps the provider names accepted in configuration to their
classes. Custom providers subclass BaseProvider and are passed through
``ProviderConfig.provider``.
"""

from typing import Dict, Type

from .apple import AppleProvider
from .base import BaseProvider, ProviderEndpoints
from .discord import DiscordProvider
from .github import GitHubProvider
from .google import GoogleProvider
from .linkedin import LinkedInProvider
from .microsoft import MicrosoftProvider
from .spotify import SpotifyProvider
from .twitter import TwitterProvider

BUILT_IN_PROVIDERS: Dict[str, Type[BaseProvider]] = {
    "google": GoogleProvider,
    "github": GitHubProvider,
    "discord": DiscordProvider,
    "twitter": TwitterProvider,
    "apple": AppleProvider,
    "microsoft": MicrosoftProvider,
    "linkedin": LinkedInProvider,
    "spotify": SpotifyProvider,
}

__all__ = [
    "BUILT_IN_PROVIDERS",
    "BaseProvider",
    "ProviderEndpoints",
    "AppleProvider",
    "DiscordProvider",
    "GitHubProvider",
    "GoogleProvider",
    "LinkedInProvider",
    "MicrosoftProvider",
    "SpotifyProvider",
    "TwitterProvider",
]
