"""
OAuth2 client-credentials token exchange for the osu! web API.

Flow::

    POST https://osu.ppy.sh/oauth/token
      Content-Type: application/json
      {"client_id": 1234, "client_secret": "...",
       "grant_type": "client_credentials", "scope": "public"}
    → {"token_type": "Bearer", "expires_in": 86400, "access_token": "..."}

One request per run, no retry. Tokens are valid for a day, far longer than a
run, so the token is cached on the provider instance and never refreshed.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from osu_leaderboard.config import Credentials
from osu_leaderboard.errors import AuthError

logger = logging.getLogger(__name__)


class TokenProvider:
    """Exchange client credentials for a bearer token.

    Usage::

        provider = TokenProvider(credentials, token_url=config.api.token_url, http=client)
        token = provider.fetch_token()
    """

    def __init__(
        self,
        credentials: Credentials,
        token_url: str,
        http: httpx.Client,
    ) -> None:
        self.credentials = credentials
        self.token_url = token_url
        self.http = http
        self._access_token: Optional[str] = None

    def fetch_token(self) -> str:
        """Return the bearer token, performing the exchange on first call.

        Raises:
            AuthError: On transport failure, non-2xx status, a non-JSON body,
                or a response without ``access_token``.
        """
        if self._access_token is not None:
            return self._access_token

        try:
            resp = self.http.post(
                self.token_url,
                json={
                    "client_id": self.credentials.client_id,
                    "client_secret": self.credentials.client_secret.get_secret_value(),
                    "grant_type": "client_credentials",
                    "scope": "public",
                },
                headers={"Accept": "application/json"},
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise AuthError(
                f"Token endpoint returned HTTP {exc.response.status_code}."
            ) from exc
        except httpx.HTTPError as exc:
            raise AuthError(f"Token request failed: {exc}") from exc
        except ValueError as exc:
            raise AuthError("Token endpoint returned a non-JSON body.") from exc

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise AuthError("Token response did not contain an access_token.")

        self._access_token = str(token)
        logger.info("osu! OAuth2 token obtained for client_id=%d", self.credentials.client_id)
        return self._access_token
