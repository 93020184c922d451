"""Concrete OAuth2 provider clients.

Each client declares its endpoints, its token response variant and its
profile mapping. Differences from the standard flow:

- GitHub reports token errors with HTTP 200 and an ``error`` field, and
  classic OAuth app tokens carry no ``expires_in``. A private profile
  email is resolved through ``/user/emails``.
- Google, Gmail and YouTube return an OpenID ``id_token`` and usually do not
  rotate the refresh token.
- Twitch returns ``scope`` as a list; its profile endpoint needs a
  ``Client-Id`` header and wraps the user in ``data[0]``.
- Reddit authenticates the token endpoint with HTTP Basic and rejects
  requests without a descriptive User-Agent, so it counts as unconfigured
  until one is set.
"""

from __future__ import annotations

from typing import Any

import httpx

from areahub.core.exceptions import ProviderError
from areahub.core.logging import get_logger
from areahub.models.enums import OAuthProvider
from areahub.services.oauth2.base import (
    OAuth2ProviderClient,
    ProviderUserInfo,
    TokenResponse,
)

logger = get_logger(__name__)

# =============================================================================
# Token response variants
# =============================================================================


class GoogleTokenResponse(TokenResponse):
    """Google token response (OpenID Connect)."""

    id_token: str | None = None

    def id_token_value(self) -> str | None:
        return self.id_token


class GitHubTokenResponse(TokenResponse):
    """GitHub token response.

    ``refresh_token_expires_in`` is present only for GitHub App tokens.
    """

    refresh_token_expires_in: int | None = None


class TwitchTokenResponse(TokenResponse):
    """Twitch token response; scope arrives as a list."""


class DiscordTokenResponse(TokenResponse):
    """Discord token response."""


class SpotifyTokenResponse(TokenResponse):
    """Spotify token response."""


class RedditTokenResponse(TokenResponse):
    """Reddit token response."""


# =============================================================================
# Clients
# =============================================================================


class DiscordOAuth2Client(OAuth2ProviderClient):
    """Discord OAuth2 client."""

    provider = OAuthProvider.DISCORD
    display_name = "Discord"
    token_url = "https://discord.com/api/oauth2/token"
    user_info_url = "https://discord.com/api/users/@me"
    token_response_model = DiscordTokenResponse

    def _parse_user_info(self, payload: Any) -> ProviderUserInfo:
        user_id = str(payload["id"])
        avatar = payload.get("avatar")
        return ProviderUserInfo(
            id=user_id,
            username=payload.get("global_name") or payload.get("username"),
            email=payload.get("email"),
            avatar_url=(
                f"https://cdn.discordapp.com/avatars/{user_id}/{avatar}.png" if avatar else None
            ),
        )


class GoogleOAuth2Client(OAuth2ProviderClient):
    """Google account OAuth2 client."""

    provider = OAuthProvider.GOOGLE
    display_name = "Google"
    token_url = "https://oauth2.googleapis.com/token"
    user_info_url = "https://www.googleapis.com/oauth2/v2/userinfo"
    token_response_model = GoogleTokenResponse

    def _parse_user_info(self, payload: Any) -> ProviderUserInfo:
        return ProviderUserInfo(
            id=str(payload["id"]),
            username=payload.get("name"),
            email=payload.get("email"),
            avatar_url=payload.get("picture"),
        )


class GmailOAuth2Client(GoogleOAuth2Client):
    """Gmail uses Google's endpoints with its own client registration."""

    provider = OAuthProvider.GMAIL
    display_name = "Gmail"


class YouTubeOAuth2Client(GoogleOAuth2Client):
    """YouTube uses Google's endpoints with its own client registration."""

    provider = OAuthProvider.YOUTUBE
    display_name = "YouTube"


class GitHubOAuth2Client(OAuth2ProviderClient):
    """GitHub OAuth2 client."""

    provider = OAuthProvider.GITHUB
    display_name = "GitHub"
    token_url = "https://github.com/login/oauth/access_token"
    user_info_url = "https://api.github.com/user"
    emails_url = "https://api.github.com/user/emails"
    token_response_model = GitHubTokenResponse

    def _user_info_headers(self, access_token: str) -> dict[str, str]:
        headers = super()._user_info_headers(access_token)
        headers["Accept"] = "application/vnd.github+json"
        return headers

    async def get_user_info(self, access_token: str) -> ProviderUserInfo:
        info = await super().get_user_info(access_token)
        if info.email:
            return info

        # Profile email is private; fall back to the primary verified address
        try:
            emails = await self._get_json(self.emails_url, access_token)
        except ProviderError as e:
            logger.info(
                "GitHub email lookup failed",
                extra={"context": {"provider": self.provider.value, "error": e.message}},
            )
            return info

        primary = next(
            (
                entry.get("email")
                for entry in emails or []
                if isinstance(entry, dict) and entry.get("primary") and entry.get("verified")
            ),
            None,
        )
        return ProviderUserInfo(
            id=info.id,
            username=info.username,
            email=primary,
            avatar_url=info.avatar_url,
        )

    def _parse_user_info(self, payload: Any) -> ProviderUserInfo:
        return ProviderUserInfo(
            id=str(payload["id"]),
            username=payload.get("login"),
            email=payload.get("email"),
            avatar_url=payload.get("avatar_url"),
        )


class SpotifyOAuth2Client(OAuth2ProviderClient):
    """Spotify OAuth2 client."""

    provider = OAuthProvider.SPOTIFY
    display_name = "Spotify"
    token_url = "https://accounts.spotify.com/api/token"
    user_info_url = "https://api.spotify.com/v1/me"
    token_response_model = SpotifyTokenResponse

    def _parse_user_info(self, payload: Any) -> ProviderUserInfo:
        images = payload.get("images") or []
        return ProviderUserInfo(
            id=str(payload["id"]),
            username=payload.get("display_name"),
            email=payload.get("email"),
            avatar_url=images[0].get("url") if images else None,
        )


class TwitchOAuth2Client(OAuth2ProviderClient):
    """Twitch OAuth2 client."""

    provider = OAuthProvider.TWITCH
    display_name = "Twitch"
    token_url = "https://id.twitch.tv/oauth2/token"
    user_info_url = "https://api.twitch.tv/helix/users"
    token_response_model = TwitchTokenResponse

    def _user_info_headers(self, access_token: str) -> dict[str, str]:
        headers = super()._user_info_headers(access_token)
        headers["Client-Id"] = self.config.client_id or ""
        return headers

    def _parse_user_info(self, payload: Any) -> ProviderUserInfo:
        users = payload.get("data") if isinstance(payload, dict) else None
        if not users:
            raise ProviderError(
                "No user data returned from Twitch",
                provider=self.provider.value,
            )
        user = users[0]
        return ProviderUserInfo(
            id=str(user["id"]),
            username=user.get("display_name") or user.get("login"),
            email=user.get("email"),
            avatar_url=user.get("profile_image_url"),
        )


class RedditOAuth2Client(OAuth2ProviderClient):
    """Reddit OAuth2 client."""

    provider = OAuthProvider.REDDIT
    display_name = "Reddit"
    token_url = "https://www.reddit.com/api/v1/access_token"
    user_info_url = "https://oauth.reddit.com/api/v1/me"
    token_response_model = RedditTokenResponse

    @property
    def is_configured(self) -> bool:
        return super().is_configured and bool(self.config.user_agent)

    def _token_auth(self) -> httpx.Auth | None:
        return httpx.BasicAuth(self.config.client_id or "", self.config.client_secret or "")

    def _token_body(self, data: dict[str, str]) -> dict[str, str]:
        return dict(data)

    def _parse_user_info(self, payload: Any) -> ProviderUserInfo:
        icon = payload.get("icon_img") or None
        return ProviderUserInfo(
            id=str(payload["id"]),
            username=payload.get("name"),
            # Reddit does not expose the account email
            email=None,
            avatar_url=icon.split("?", 1)[0] if icon else None,
        )


PROVIDER_CLIENTS: dict[OAuthProvider, type[OAuth2ProviderClient]] = {
    client.provider: client
    for client in (
        DiscordOAuth2Client,
        GoogleOAuth2Client,
        GmailOAuth2Client,
        YouTubeOAuth2Client,
        GitHubOAuth2Client,
        SpotifyOAuth2Client,
        TwitchOAuth2Client,
        RedditOAuth2Client,
    )
}


__all__ = [
    "PROVIDER_CLIENTS",
    "DiscordOAuth2Client",
    "GitHubOAuth2Client",
    "GmailOAuth2Client",
    "GoogleOAuth2Client",
    "RedditOAuth2Client",
    "SpotifyOAuth2Client",
    "TwitchOAuth2Client",
    "YouTubeOAuth2Client",
]
