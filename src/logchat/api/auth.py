"""Bearer token verification.

Two verifiers resolve a token to a user id:
- StaticTokenVerifier: a ``token -> user`` map from config (self-hosting, dev)
- RemoteTokenVerifier: asks an auth server's ``/user`` endpoint (Supabase-style)
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional

import httpx

from logchat.core.config import AuthConfig, Settings
from logchat.core.errors import AuthError, UpstreamError
from logchat.core.logging import logger


def bearer_token(authorization: Optional[str]) -> str:
    """Extract the token from an ``Authorization: Bearer ...`` header."""
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthError("missing_bearer")
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise AuthError("missing_bearer")
    return token


class TokenVerifier(ABC):
    """Resolves a bearer token to a user id."""

    @abstractmethod
    def verify(self, token: str) -> Optional[str]:
        """User id for ``token``, or None when it is not valid."""
        pass

    def authenticate(self, authorization: Optional[str]) -> str:
        """User id for an Authorization header; raises AuthError otherwise."""
        user_id = self.verify(bearer_token(authorization))
        if not user_id:
            raise AuthError("Unauthorized")
        return user_id


class StaticTokenVerifier(TokenVerifier):
    def __init__(self, tokens: Dict[str, str]):
        self.tokens = dict(tokens)

    def verify(self, token: str) -> Optional[str]:
        return self.tokens.get(token)


class RemoteTokenVerifier(TokenVerifier):
    """GET ``{auth_url}/user`` with the caller's bearer token."""

    def __init__(self, auth_url: str, api_key: str = "", timeout: float = 10.0,
                 client: Optional[httpx.Client] = None):
        self.auth_url = auth_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def verify(self, token: str) -> Optional[str]:
        headers = {"Authorization": f"Bearer {token}"}
        if self.api_key:
            headers["apikey"] = self.api_key

        try:
            resp = self.client.get(f"{self.auth_url}/user", headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Auth server unreachable: {e}")
            raise UpstreamError(f"Auth server unavailable: {str(e)}") from e

        if resp.status_code in (401, 403):
            return None
        if resp.status_code != 200:
            raise UpstreamError(f"Auth server error: {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            logger.error(f"Auth server returned a non-JSON body: {e}")
            raise UpstreamError("Auth server returned an invalid response") from e
        user = data.get("user", data) if isinstance(data, dict) else {}
        return user.get("id") if isinstance(user, dict) else None


def build_verifier(settings: Settings) -> TokenVerifier:
    """Remote verification when an auth server is configured, static tokens otherwise."""
    auth: AuthConfig = settings.auth
    if auth.auth_url:
        logger.info(f"Auth: remote verification via {auth.auth_url}")
        return RemoteTokenVerifier(auth.auth_url, auth.auth_api_key, auth.timeout_seconds)
    logger.info(f"Auth: {len(auth.api_tokens)} static API tokens")
    return StaticTokenVerifier(auth.api_tokens)
