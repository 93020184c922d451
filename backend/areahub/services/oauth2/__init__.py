"""OAuth2 provider clients."""

from areahub.services.oauth2.base import (
    OAuth2ProviderClient,
    OAuth2ProviderConfig,
    ProviderUserInfo,
    TokenExtras,
    TokenResponse,
    TokenSet,
)
from areahub.services.oauth2.providers import (
    PROVIDER_CLIENTS,
    DiscordOAuth2Client,
    GitHubOAuth2Client,
    GmailOAuth2Client,
    GoogleOAuth2Client,
    RedditOAuth2Client,
    SpotifyOAuth2Client,
    TwitchOAuth2Client,
    YouTubeOAuth2Client,
)
from areahub.services.oauth2.registry import (
    OAuth2ClientRegistry,
    provider_config_from_settings,
)

__all__ = [
    "PROVIDER_CLIENTS",
    "DiscordOAuth2Client",
    "GitHubOAuth2Client",
    "GmailOAuth2Client",
    "GoogleOAuth2Client",
    "OAuth2ClientRegistry",
    "OAuth2ProviderClient",
    "OAuth2ProviderConfig",
    "ProviderUserInfo",
    "RedditOAuth2Client",
    "SpotifyOAuth2Client",
    "TokenExtras",
    "TokenResponse",
    "TokenSet",
    "TwitchOAuth2Client",
    "YouTubeOAuth2Client",
    "provider_config_from_settings",
]
