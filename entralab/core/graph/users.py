"""Entra ID user management operations."""
from __future__ import annotations
import logging
from typing import Optional, Sequence
from urllib.parse import quote

from .exceptions import UserNotFoundError
from .service import GraphService

logger = logging.getLogger(__name__)

DEFAULT_USER_SELECT = ("id", "displayName", "userPrincipalName", "accountEnabled", "mail")


class UserService(GraphService):
    """Service for managing Entra ID users."""

    def get_user(self, user_principal_name: str) -> Optional[dict]:
        """Return the user with this UPN (or object id), None if it does not exist."""
        result = self.graph_request("GET", f"users/{quote(user_principal_name)}", operation="get_user")
        if not result.ok and result.error.status_code == 404:
            return None
        return result.unwrap()

    def list_users(self, select: Optional[Sequence[str]] = None) -> list[dict]:
        """List every user in the tenant, following pagination."""
        fields = ",".join(select or DEFAULT_USER_SELECT)
        return self.request("GET", f"users?$select={fields}", fetch_all=True, operation="list_users")

    def create_user(
        self,
        display_name: str,
        mail_nickname: str,
        user_principal_name: str,
        password: str,
        force_change_password: bool = True,
    ) -> str:
        """Create a user (idempotent) and return its ID.

        Args:
            display_name: Display name
            mail_nickname: Mail alias
            user_principal_name: UPN, e.g. alice@contoso.onmicrosoft.com
            password: Initial password
            force_change_password: Require a password change at first sign-in

        Returns:
            User ID
        """
        existing = self.get_user(user_principal_name)
        if existing:
            logger.info("User '%s' already exists (id=%s)", user_principal_name, existing["id"])
            return existing["id"]

        payload = {
            "accountEnabled": True,
            "displayName": display_name,
            "mailNickname": mail_nickname,
            "userPrincipalName": user_principal_name,
            "passwordProfile": {
                "forceChangePasswordNextSignIn": force_change_password,
                "password": password,
            },
        }
        created = self.request("POST", "users", body=payload, operation="create_user")
        logger.info("User '%s' created (id=%s)", user_principal_name, created["id"])
        return created["id"]

    def disable_user(self, user_principal_name: str) -> None:
        """Block sign-in for a user.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        user = self.get_user(user_principal_name)
        if not user:
            raise UserNotFoundError(f"User '{user_principal_name}' not found")
        self.request("PATCH", f"users/{user['id']}", body={"accountEnabled": False}, operation="disable_user")
        logger.info("User '%s' disabled", user_principal_name)
