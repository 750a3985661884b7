"""
Persisted login session and the login/register calls that populate it.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

import requests

from config import APIConfig
from errors import RequestFailed, Unauthenticated
from fetchers import BaseFetcher

logger = logging.getLogger(__name__)


class SessionStore:
    """Bearer credential kept in a small JSON file between runs."""

    KEY = "accessToken"

    def __init__(self, path: str):
        self.path = Path(path)

    def token(self) -> Optional[str]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Session file unreadable ({e}); treating as logged out")
            return None
        token = data.get(self.KEY) if isinstance(data, dict) else None
        return token or None

    def save(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps({self.KEY: token}), encoding="utf-8")
        os.chmod(tmp, 0o600)
        tmp.replace(self.path)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


class AuthClient(BaseFetcher):
    """POST /login and /register against the backend."""

    source_name = "auth"

    def __init__(self, api: APIConfig, store: SessionStore, session: Optional[requests.Session] = None):
        super().__init__(api, session)
        self.store = store

    async def login(self, email: str, password: str) -> str:
        """Log in and persist the token. Returns the server's redirect URL."""
        resp = await self._post("/login", {"email": email, "password": password})
        if resp.status_code == 401:
            raise Unauthenticated("Invalid email or password", status_code=401)
        if not resp.ok:
            raise RequestFailed(f"Login failed: HTTP {resp.status_code}", status_code=resp.status_code)

        try:
            data = resp.json()
            token = data["accessToken"]
        except (ValueError, KeyError, TypeError) as e:
            raise RequestFailed("Login response carried no access token") from e

        self.store.save(token)
        logger.info(f"Logged in as {email}")
        return data.get("redirectUrl", "")

    async def register(self, name: str, email: str, password: str) -> None:
        resp = await self._post("/register", {"name": name, "email": email, "password": password},
                                allow_redirects=False)
        if resp.status_code == 400:
            raise RequestFailed("Email already exists. Please use a different email.", status_code=400)
        # The backend answers a successful registration with a redirect to /login
        if not (resp.ok or resp.is_redirect):
            raise RequestFailed(f"Registration failed: HTTP {resp.status_code}", status_code=resp.status_code)
        logger.info(f"Registered {email}")

    async def _post(self, path: str, body: dict, **kwargs) -> requests.Response:
        try:
            return await self._request_async("POST", path, json=body, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"[{self.source_name}] Request failed: {e}")
            raise RequestFailed(f"[{self.source_name}] Request failed: {e}") from e
