from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from dotenv import load_dotenv

from .errors import ConfigurationError
from .oauth import IDENTITY_URL, SANDBOX_IDENTITY_URL
from .token_store import load_tokens

PRODUCTION_API_URL = "https://eaccountingapi.vismaonline.com/v2"
SANDBOX_API_URL = "https://eaccountingapi-sandbox.test.vismaonline.com/v2"
TOKENS_PATH_DEFAULT = ".env_eaccounting_tokens.json"


@dataclass(frozen=True, slots=True)
class EAccountingSettings:
    environment: str
    api_url: str
    identity_url: str
    client_id: str | None
    client_secret: str | None
    redirect_uri: str | None
    access_token: str | None
    refresh_token: str | None
    tokens_path: str
    timeout_seconds: float | None = None
    token_expires_at: datetime | None = None

    @classmethod
    def from_env(cls) -> "EAccountingSettings":
        """
        Load settings from environment variables (and `.env`, if present).

        Reads:
          EACCOUNTING_CLIENT_ID, EACCOUNTING_CLIENT_SECRET, EACCOUNTING_REDIRECT_URI,
          EACCOUNTING_ACCESS_TOKEN, EACCOUNTING_REFRESH_TOKEN, EACCOUNTING_ENVIRONMENT,
          EACCOUNTING_API_URL, EACCOUNTING_HTTP_TIMEOUT_SECONDS, EACCOUNTING_TOKENS_PATH

        Tokens saved in the token store win over the env values.
        """
        load_dotenv(override=False)

        environment = _env("EACCOUNTING_ENVIRONMENT") or "production"
        environment = environment.lower()
        api_url, identity_url = _urls_for_env(environment)
        tokens_path = _env("EACCOUNTING_TOKENS_PATH") or os.path.abspath(TOKENS_PATH_DEFAULT)
        stored = load_tokens(tokens_path) or {}
        stored_access = stored.get("access_token")

        timeout_raw = _env("EACCOUNTING_HTTP_TIMEOUT_SECONDS")
        return cls(
            environment=environment,
            api_url=_env("EACCOUNTING_API_URL") or api_url,
            identity_url=identity_url,
            client_id=_env("EACCOUNTING_CLIENT_ID"),
            client_secret=_env("EACCOUNTING_CLIENT_SECRET"),
            redirect_uri=_env("EACCOUNTING_REDIRECT_URI"),
            access_token=stored_access or _env("EACCOUNTING_ACCESS_TOKEN"),
            refresh_token=stored.get("refresh_token") or _env("EACCOUNTING_REFRESH_TOKEN"),
            tokens_path=tokens_path,
            timeout_seconds=float(timeout_raw) if timeout_raw else None,
            token_expires_at=_parse_expires(stored.get("expires_at")) if stored_access else None,
        )

    def require_oauth(self) -> tuple[str, str, str]:
        """Return (client_id, client_secret, redirect_uri) or fail naming what is missing."""
        missing = [
            name
            for name, value in (
                ("EACCOUNTING_CLIENT_ID", self.client_id),
                ("EACCOUNTING_CLIENT_SECRET", self.client_secret),
                ("EACCOUNTING_REDIRECT_URI", self.redirect_uri),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing OAuth configuration: {', '.join(missing)}"
            )
        return self.client_id, self.client_secret, self.redirect_uri  # type: ignore[return-value]


def _urls_for_env(environment: str) -> tuple[str, str]:
    if environment == "production":
        return PRODUCTION_API_URL, IDENTITY_URL
    if environment == "sandbox":
        return SANDBOX_API_URL, SANDBOX_IDENTITY_URL
    raise ValueError("EACCOUNTING_ENVIRONMENT must be 'production' or 'sandbox'.")


def _parse_expires(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _env(name: str) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or None
