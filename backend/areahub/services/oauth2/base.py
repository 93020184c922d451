"""OAuth2 provider client base.

One ``OAuth2ProviderClient`` instance exists per provider. It receives an
explicit ``OAuth2ProviderConfig`` at construction; a missing client id or
secret leaves the client "unconfigured", which is reported as a
ProviderError before any network call is attempted.

Provider token responses are parsed into a provider-specific pydantic model
and normalised into one ``TokenSet`` shape. Provider extras (id_token,
scope, token_type) travel in ``TokenSet.extras``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, ClassVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from areahub.core.clock import Clock, utc_now
from areahub.core.exceptions import ProviderError
from areahub.core.logging import get_logger
from areahub.models.enums import OAuthProvider
from areahub.utils.crypto import scrub_secrets

logger = get_logger(__name__)

# Longest provider error text carried into a ProviderError message
_MAX_ERROR_TEXT = 200


@dataclass(frozen=True)
class OAuth2ProviderConfig:
    """Credentials and transport settings for one provider.

    Attributes:
        provider: Provider this configuration belongs to
        client_id: OAuth2 client id, ``None`` when not configured
        client_secret: OAuth2 client secret, ``None`` when not configured
        timeout_seconds: Bound applied to every provider HTTP call
        user_agent: User-Agent sent on every call (required by Reddit)
    """

    provider: OAuthProvider
    client_id: str | None = None
    client_secret: str | None = field(default=None, repr=False)
    timeout_seconds: float = 10.0
    user_agent: str | None = None


@dataclass(frozen=True)
class TokenExtras:
    """Provider extras that are not part of the stored credential."""

    id_token: str | None = field(default=None, repr=False)
    scope: str | None = None
    token_type: str | None = None


@dataclass(frozen=True)
class TokenSet:
    """Normalised result of a code exchange or a refresh.

    ``expires_at`` is the call time plus the provider-reported TTL, or
    ``None`` when the provider did not report one.
    """

    access_token: str = field(repr=False)
    refresh_token: str | None = field(default=None, repr=False)
    expires_at: datetime | None = None
    extras: TokenExtras = field(default_factory=TokenExtras)


@dataclass(frozen=True)
class ProviderUserInfo:
    """Provider profile, used for display only."""

    id: str
    username: str | None = None
    email: str | None = None
    avatar_url: str | None = None


class TokenResponse(BaseModel):
    """Standard RFC 6749 token response."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(..., min_length=1)
    token_type: str | None = None
    expires_in: int | None = None
    refresh_token: str | None = None
    scope: str | None = None

    @field_validator("refresh_token", mode="before")
    @classmethod
    def empty_refresh_token_is_none(cls, v: Any) -> Any:
        """Some providers send an empty string instead of omitting the field."""
        return v or None

    @field_validator("scope", mode="before")
    @classmethod
    def join_scope_list(cls, v: Any) -> Any:
        """Accept scope as a list (Twitch) as well as a space separated string."""
        if isinstance(v, list):
            return " ".join(str(item) for item in v)
        return v

    def id_token_value(self) -> str | None:
        """Return the OpenID id_token when the provider model carries one."""
        return None

    def to_token_set(self, issued_at: datetime) -> TokenSet:
        """Normalise into a TokenSet with expiry relative to ``issued_at``."""
        expires_at = None
        if self.expires_in is not None:
            expires_at = issued_at + timedelta(seconds=self.expires_in)
        return TokenSet(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_at=expires_at,
            extras=TokenExtras(
                id_token=self.id_token_value(),
                scope=self.scope,
                token_type=self.token_type,
            ),
        )


class OAuth2ProviderClient(ABC):
    """Base class for provider adapters.

    Subclasses declare the endpoints and the token response model, and map
    the provider profile onto ``ProviderUserInfo``. Transport quirks are
    expressed by overriding the small ``_token_*`` and ``_user_info_*``
    hooks.
    """

    provider: ClassVar[OAuthProvider]
    display_name: ClassVar[str]
    token_url: ClassVar[str]
    user_info_url: ClassVar[str | None] = None
    token_response_model: ClassVar[type[TokenResponse]] = TokenResponse

    def __init__(self, config: OAuth2ProviderConfig, clock: Clock = utc_now) -> None:
        if config.provider != self.provider:
            raise ValueError(
                f"{type(self).__name__} expects {self.provider} configuration, "
                f"got {config.provider}"
            )
        self.config = config
        self._clock = clock
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        """True when both client id and client secret are present."""
        return bool(self.config.client_id and self.config.client_secret)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_seconds),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=20),
            )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # -------------------------------------------------------------------------
    # Token endpoint
    # -------------------------------------------------------------------------

    async def exchange_code(
        self,
        code: str,
        redirect_uri: str,
        code_verifier: str | None = None,
    ) -> TokenSet:
        """Exchange an authorization code for tokens.

        Raises:
            ProviderError: If the client is unconfigured, the request fails,
                or the provider rejects the code.
        """
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
        }
        if code_verifier:
            data["code_verifier"] = code_verifier
        return await self._request_tokens(
            "token exchange",
            data,
            secrets=[code, code_verifier],
        )

    async def refresh_token(self, refresh_token: str) -> TokenSet:
        """Obtain a new access token from a refresh token.

        The returned ``refresh_token`` is ``None`` when the provider did not
        rotate it; callers keep the previous one in that case.
        """
        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        return await self._request_tokens(
            "token refresh",
            data,
            secrets=[refresh_token],
        )

    def _require_configured(self) -> None:
        if not self.is_configured:
            raise ProviderError(
                f"{self.display_name} OAuth2 is not configured",
                provider=self.provider.value,
            )

    def _token_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.user_agent:
            headers["User-Agent"] = self.config.user_agent
        return headers

    def _token_auth(self) -> httpx.Auth | None:
        """HTTP auth for the token endpoint; credentials go in the body by default."""
        return None

    def _token_body(self, data: dict[str, str]) -> dict[str, str]:
        return {
            "client_id": self.config.client_id or "",
            "client_secret": self.config.client_secret or "",
            **data,
        }

    async def _request_tokens(
        self,
        action: str,
        data: dict[str, str],
        secrets: list[str | None],
    ) -> TokenSet:
        self._require_configured()
        secrets = [self.config.client_secret, *secrets]
        issued_at = self._clock()

        client = await self._get_client()
        try:
            response = await client.post(
                self.token_url,
                data=self._token_body(data),
                headers=self._token_headers(),
                auth=self._token_auth(),
            )
        except httpx.TimeoutException as e:
            logger.warning(
                "OAuth2 %s timed out",
                action,
                extra={"context": {"provider": self.provider.value}},
            )
            raise ProviderError(
                f"{action} failed: request timed out",
                provider=self.provider.value,
            ) from e
        except httpx.HTTPError as e:
            message = scrub_secrets(f"{action} failed: {type(e).__name__}: {e}", secrets)
            logger.warning(
                "OAuth2 %s request error",
                action,
                extra={"context": {"provider": self.provider.value, "error": message}},
            )
            raise ProviderError(message, provider=self.provider.value) from e

        payload = _json_object(response)
        if not response.is_success or "error" in payload:
            message = scrub_secrets(
                f"{action} failed: {response.status_code} {_error_text(response, payload)}",
                secrets,
            )
            logger.warning(
                "OAuth2 %s rejected",
                action,
                extra={
                    "context": {
                        "provider": self.provider.value,
                        "status_code": response.status_code,
                        "error": message,
                    }
                },
            )
            raise ProviderError(
                message,
                provider=self.provider.value,
                status_code=response.status_code,
            )

        try:
            parsed = self.token_response_model.model_validate(payload)
        except ValidationError:
            # The validation error echoes input values, tokens included
            raise ProviderError(
                f"{action} failed: malformed token response",
                provider=self.provider.value,
                status_code=response.status_code,
            ) from None

        return parsed.to_token_set(issued_at)

    # -------------------------------------------------------------------------
    # Profile endpoint
    # -------------------------------------------------------------------------

    async def get_user_info(self, access_token: str) -> ProviderUserInfo:
        """Fetch the provider profile for display.

        Raises:
            ProviderError: If the provider has no profile endpoint or the
                request fails.
        """
        if self.user_info_url is None:
            raise ProviderError(
                f"{self.display_name} does not expose a user profile",
                provider=self.provider.value,
            )
        payload = await self._get_json(self.user_info_url, access_token)
        try:
            return self._parse_user_info(payload)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ProviderError(
                "user info request failed: unexpected profile payload",
                provider=self.provider.value,
            ) from e

    def _user_info_headers(self, access_token: str) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }
        if self.config.user_agent:
            headers["User-Agent"] = self.config.user_agent
        return headers

    async def _get_json(self, url: str, access_token: str) -> Any:
        client = await self._get_client()
        try:
            response = await client.get(url, headers=self._user_info_headers(access_token))
        except httpx.HTTPError as e:
            raise ProviderError(
                f"user info request failed: {type(e).__name__}",
                provider=self.provider.value,
            ) from e

        if not response.is_success:
            raise ProviderError(
                f"user info request failed: {response.status_code}",
                provider=self.provider.value,
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError:
            raise ProviderError(
                "user info request failed: invalid JSON",
                provider=self.provider.value,
                status_code=response.status_code,
            ) from None

    @abstractmethod
    def _parse_user_info(self, payload: Any) -> ProviderUserInfo:
        """Map the provider profile payload onto ProviderUserInfo."""
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} configured={self.is_configured}>"


def _json_object(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _error_text(response: httpx.Response, payload: dict[str, Any]) -> str:
    """Short provider error summary: error code, then description."""
    error = payload.get("error")
    description = payload.get("error_description") or payload.get("message")
    parts = [str(part) for part in (error, description) if part]
    text = " - ".join(parts) if parts else response.reason_phrase or response.text
    return text[:_MAX_ERROR_TEXT]


__all__ = [
    "OAuth2ProviderClient",
    "OAuth2ProviderConfig",
    "ProviderUserInfo",
    "TokenExtras",
    "TokenResponse",
    "TokenSet",
]
