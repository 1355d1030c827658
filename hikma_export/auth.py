from __future__ import annotations

import hmac
from abc import ABC, abstractmethod
from typing import Dict, Optional

from hikma_export.errors import Unauthorized


def extract_bearer_token(header_value: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not header_value:
        return None
    if header_value.startswith("Bearer "):
        token = header_value[7:].strip()
        return token or None
    return None


class AuthResolver(ABC):
    @abstractmethod
    def resolve(self, credential: Optional[str]) -> str:
        """Return the user id behind ``credential`` or raise Unauthorized."""
        pass


class StaticTokenAuthResolver(AuthResolver):
    """Resolve bearer tokens from a fixed token -> user id mapping."""

    def __init__(self, tokens: Dict[str, str]):
        self.tokens = dict(tokens or {})

    def resolve(self, credential: Optional[str]) -> str:
        if not credential:
            raise Unauthorized("No authorization header")
        for token, user_id in self.tokens.items():
            if hmac.compare_digest(token.encode("utf-8"), credential.encode("utf-8")):
                return str(user_id)
        raise Unauthorized("Unauthorized")
