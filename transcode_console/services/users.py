from __future__ import annotations

import logging
from typing import List

from ..auth import AuthSession
from ..errors import ConfirmationRequired, ValidationError
from ..models import User
from .api_client import ApiClient

logger = logging.getLogger(__name__)

ROLES = ("admin", "user")
ROOT_ACCOUNT = "admin"


class UserAdmin:
    """User management; every operation is restricted to administrators."""

    def __init__(self, client: ApiClient, session: AuthSession):
        self.client = client
        self.session = session
        self.users: List[User] = []

    def _require_admin(self) -> None:
        if not self.session.is_admin:
            raise ValidationError("Administrator role required")

    async def load(self) -> List[User]:
        self._require_admin()
        self.users = await self.client.list_users()
        return self.users

    async def create(self, username: str, password: str, role: str = "user") -> User:
        self._require_admin()
        username = username.strip()
        if not username or not password:
            raise ValidationError("Username and password are required")
        if role not in ROLES:
            raise ValidationError(f"Unknown role: {role}")
        user = await self.client.create_user(username, password, role)
        logger.info("Created user %s (%s)", user.username, user.role)
        return user

    async def delete(self, username: str, confirmed: bool = False) -> None:
        self._require_admin()
        if username == ROOT_ACCOUNT:
            raise ValidationError("The admin account cannot be deleted")
        if not confirmed:
            raise ConfirmationRequired("delete_user")
        await self.client.delete_user(username)
        self.users = [u for u in self.users if u.username != username]
        logger.info("Deleted user %s", username)

    async def change_password(self, username: str, new_password: str) -> None:
        self._require_admin()
        if not new_password:
            raise ValidationError("New password is required")
        await self.client.change_password(username, new_password)
        logger.info("Changed password for %s", username)
