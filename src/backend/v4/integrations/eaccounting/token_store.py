"""JSON file persistence for OAuth tokens.

Used by the API layer after a code exchange or refresh. The client itself
only ever holds the credential in memory.
"""

from __future__ import annotations

import json
import os
import time
from typing import Any

from .models import AccessCredential


def load_tokens(path: str) -> dict[str, Any] | None:
    if not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, dict):
        return None
    return {k: v for k, v in raw.items() if v is not None}


def save_tokens(path: str, credential: AccessCredential) -> None:
    payload: dict[str, Any] = {
        "access_token": credential.access_token,
        "refresh_token": credential.refresh_token,
        "token_type": credential.token_type,
        "scope": credential.scope,
        "expires_at": credential.expires_at.isoformat() if credential.expires_at else None,
        "saved_at_unix": int(time.time()),
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
