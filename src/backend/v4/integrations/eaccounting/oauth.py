"""OAuth2 authorization-code flow and the held access credential.

The token manager never persists anything and never retries: refresh tokens
are single-use, so a failed refresh is surfaced to the caller as-is.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any
from urllib.parse import urlencode

from .errors import AuthError
from .models import AccessCredential
from .transport import decode_response, send

logger = logging.getLogger(__name__)

IDENTITY_URL = "https://identity.vismaonline.com"
SANDBOX_IDENTITY_URL = "https://identity-sandbox.test.vismaonline.com"
DEFAULT_SCOPE = "ea:api ea:sales offline_access"


def build_authorization_url(
    client_id: str,
    redirect_uri: str,
    scope: str = DEFAULT_SCOPE,
    state: str | None = None,
    *,
    identity_url: str = IDENTITY_URL,
) -> str:
    """Return the consent URL the user is sent to.

    `state` defaults to a fresh random value; the caller must remember it and
    check it on the callback.
    """
    query = urlencode(
        {
            "response_type": "code",
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "scope": scope,
            "state": state or secrets.token_urlsafe(24),
        }
    )
    return f"{identity_url.rstrip('/')}/connect/authorize?{query}"


class TokenManager:
    def __init__(
        self,
        *,
        access_token: str | AccessCredential | None = None,
        identity_url: str = IDENTITY_URL,
        timeout_seconds: float | None = None,
    ) -> None:
        self._identity_url = identity_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._credential: AccessCredential | None = None
        if access_token is not None:
            self.set_access_token(access_token)

    @property
    def token_url(self) -> str:
        return f"{self._identity_url}/connect/token"

    @property
    def credential(self) -> AccessCredential | None:
        return self._credential

    def set_access_token(self, token: str | AccessCredential) -> None:
        if isinstance(token, AccessCredential):
            self._credential = token
        else:
            self._credential = AccessCredential(access_token=token)

    def get_access_token(self) -> str | None:
        if self._credential is None:
            return None
        return self._credential.access_token

    def build_authorization_url(
        self,
        client_id: str,
        redirect_uri: str,
        scope: str = DEFAULT_SCOPE,
        state: str | None = None,
    ) -> str:
        return build_authorization_url(
            client_id,
            redirect_uri,
            scope,
            state,
            identity_url=self._identity_url,
        )

    def exchange_code_for_token(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        code: str,
    ) -> AccessCredential:
        """Exchange an authorization code. Does not change the held token."""
        logger.info("Exchanging authorization code for tokens")
        return self._post_token(
            client_id,
            client_secret,
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
            },
        )

    def refresh_token(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
    ) -> AccessCredential:
        """Trade a refresh token for a new credential. Does not change the held token."""
        logger.info("Refreshing access token")
        return self._post_token(
            client_id,
            client_secret,
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
        )

    def _post_token(
        self,
        client_id: str,
        client_secret: str,
        form: dict[str, str],
    ) -> AccessCredential:
        resp = send(
            "POST",
            self.token_url,
            data=form,
            auth=(client_id, client_secret),
            headers={
                "Accept": "application/json",
                "Content-Type": "application/x-www-form-urlencoded",
            },
            timeout=self._timeout_seconds,
        )
        payload: Any = decode_response(resp)
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise AuthError(
                "Token response missing access_token",
                status_code=resp.status_code,
                body=resp.text,
            )
        return AccessCredential.from_token_response(payload)
