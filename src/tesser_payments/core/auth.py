"""
OAuth2 client-credentials authentication against the Tesser auth server.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from .client import ApiError, _decode_json
from .config import TesserConfig

__all__ = ["AccessToken", "authenticate"]


@dataclass(frozen=True)
class AccessToken:
    """
    Bearer credential created by :func:`authenticate`.

    Clients receive it at construction time and only ever read it.
    """

    value: str
    token_type: str = "Bearer"
    expires_in: Optional[int] = None

    @property
    def authorization_header(self) -> str:
        return f"Bearer {self.value}"

    def masked(self) -> str:
        if len(self.value) <= 28:
            return "***"
        return f"{self.value[:20]}...{self.value[-8:]}"

    def __repr__(self) -> str:
        return f"AccessToken(value='{self.masked()}', expires_in={self.expires_in})"


def authenticate(session: requests.Session, config: TesserConfig) -> AccessToken:
    logging.info("Requesting access token from %s", config.auth_url)
    response = session.post(
        config.auth_url,
        data={
            "client_id": config.client_id,
            "client_secret": config.client_secret,
            "audience": config.base_url,
            "grant_type": "client_credentials",
        },
        timeout=config.request_timeout_seconds,
    )
    if response.status_code >= 400:
        raise ApiError("Auth POST", config.auth_url, response.status_code, response.text)

    payload = _decode_json("Auth POST", config.auth_url, response)
    try:
        value = payload["access_token"]
    except KeyError as exc:
        raise ApiError(
            "Auth POST", config.auth_url, response.status_code, response.text
        ) from exc

    expires_in = payload.get("expires_in")
    return AccessToken(
        value=value,
        token_type=payload.get("token_type", "Bearer"),
        expires_in=int(expires_in) if expires_in is not None else None,
    )
