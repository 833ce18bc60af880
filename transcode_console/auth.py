"""Credential storage and the logged-in session.

The backend issues a bearer token at ``POST /auth/login``. The token and the
user it belongs to live in a :class:`CredentialStore`; the API client reads
the token from there on every request and clears the store when the backend
answers 401 on anything but the login call itself.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Protocol

import redis

from .config import Settings
from .errors import ValidationError
from .models import LoginResult, User

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    def get_token(self) -> Optional[str]: ...

    def get_user(self) -> Optional[User]: ...

    def save(self, token: str, user: User) -> None: ...

    def clear(self) -> None: ...


class MemoryCredentialStore:
    def __init__(self, token: Optional[str] = None, user: Optional[User] = None):
        self._token = token
        self._user = user

    def get_token(self) -> Optional[str]:
        return self._token

    def get_user(self) -> Optional[User]:
        return self._user

    def save(self, token: str, user: User) -> None:
        self._token = token
        self._user = user

    def clear(self) -> None:
        self._token = None
        self._user = None


class RedisCredentialStore:
    """Keeps credentials in a redis hash so several processes share a login."""

    def __init__(self, redis_url: str, profile: str = "default", client=None):
        self.r = client if client is not None else redis.from_url(redis_url, decode_responses=True)
        self.profile = profile

    def _key(self) -> str:
        return f"auth:{self.profile}"

    def get_token(self) -> Optional[str]:
        return self.r.hget(self._key(), "token") or None

    def get_user(self) -> Optional[User]:
        data = self.r.hgetall(self._key())
        if not data or not data.get("username"):
            return None
        return User(username=data["username"], role=data.get("role") or "user")

    def save(self, token: str, user: User) -> None:
        self.r.hset(self._key(), mapping={
            "token": token,
            "username": user.username,
            "role": user.role,
        })

    def clear(self) -> None:
        self.r.delete(self._key())


def build_credential_store(cfg: Settings) -> CredentialStore:
    if cfg.credential_store == "redis":
        store: CredentialStore = RedisCredentialStore(cfg.redis_url, cfg.credential_profile)
    elif cfg.credential_store == "memory":
        store = MemoryCredentialStore()
    else:
        raise ValueError(f"Unsupported credential store: {cfg.credential_store}")
    if cfg.api_token and not store.get_token():
        store.save(cfg.api_token, User(username="api", role="user"))
    return store


class AuthSession:
    """Login state as seen by the presentation layer."""

    def __init__(self, client, store: CredentialStore):
        self.client = client
        self.store = store
        self._listeners: List[Callable[[], None]] = []
        client.add_invalidation_listener(self._on_invalidated)

    @property
    def authenticated(self) -> bool:
        return self.store.get_token() is not None

    @property
    def current_user(self) -> Optional[User]:
        return self.store.get_user()

    @property
    def is_admin(self) -> bool:
        user = self.current_user
        return bool(user and user.is_admin)

    def on_logout(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def off_logout(self, listener: Callable[[], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def login(self, username: str, password: str) -> User:
        username = username.strip()
        if not username or not password:
            raise ValidationError("Username and password are required")
        result: LoginResult = await self.client.login(username, password)
        user = User(username=result.username, role=result.role)
        self.store.save(result.token, user)
        logger.info("Logged in as %s (%s)", user.username, user.role)
        return user

    def logout(self) -> None:
        self.store.clear()
        self._notify()

    def _on_invalidated(self) -> None:
        logger.warning("Session invalidated by the backend")
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()
