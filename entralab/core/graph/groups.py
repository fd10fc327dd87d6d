"""Entra ID group management operations."""
from __future__ import annotations
import logging
import re
from typing import Optional

from .exceptions import GroupNotFoundError
from .service import GraphService

logger = logging.getLogger(__name__)

GROUP_NAME_PATTERN = re.compile(r"^[\w .-]{3,120}$")


def _odata_quote(value: str) -> str:
    return value.replace("'", "''")


def mail_nickname(display_name: str) -> str:
    """Derive a mailNickname (ASCII letters and digits only, max 64 chars)."""
    return re.sub(r"[^A-Za-z0-9]", "", display_name)[:64] or "group"


class GroupService(GraphService):
    """Service for managing Entra ID groups."""

    def get_group_by_name(self, display_name: str) -> Optional[dict]:
        """Retrieve a group by exact display name.

        Args:
            display_name: Group display name

        Returns:
            Group representation or None if not found
        """
        groups = self.request(
            "GET",
            f"groups?$filter=displayName eq '{_odata_quote(display_name)}'",
            fetch_all=True,
            operation="get_group_by_name",
        )
        for group in groups:
            if group.get("displayName") == display_name:
                return group
        return None

    def require_group(self, display_name: str) -> dict:
        group = self.get_group_by_name(display_name)
        if group is None:
            raise GroupNotFoundError(f"Group '{display_name}' not found")
        return group

    def create_group(self, display_name: str, description: str = "", security: bool = True) -> str:
        """Idempotently create a group and return its ID.

        Args:
            display_name: Group display name (3-120 chars: letters, digits, space, _ . -)
            description: Group description
            security: Create a security group (otherwise a Microsoft 365 group)

        Returns:
            Group ID

        Raises:
            ValueError: If the group name is invalid
        """
        if not GROUP_NAME_PATTERN.match(display_name):
            raise ValueError(
                f"Invalid group name '{display_name}': must be 3-120 letters, digits, spaces, dots, dashes or underscores"
            )

        existing = self.get_group_by_name(display_name)
        if existing:
            logger.info("Group '%s' already exists (id=%s)", display_name, existing["id"])
            return existing["id"]

        payload = {
            "displayName": display_name,
            "description": description or f"{self.config.project_name} lab group",
            "mailNickname": mail_nickname(display_name),
            "mailEnabled": not security,
            "securityEnabled": security,
        }
        if not security:
            payload["groupTypes"] = ["Unified"]

        created = self.request("POST", "groups", body=payload, operation="create_group")
        logger.info("Group '%s' created (id=%s)", display_name, created["id"])
        return created["id"]

    def add_member(self, group_id: str, directory_object_id: str) -> bool:
        """Add a user, group or service principal to a group (idempotent).

        Returns:
            True if added, False if already a member
        """
        result = self.graph_request(
            "POST",
            f"groups/{group_id}/members/$ref",
            body={"@odata.id": f"https://{self.config.graph_host}/v1.0/directoryObjects/{directory_object_id}"},
            operation="add_member",
        )
        if result.ok:
            return True
        if result.error.status_code == 400 and "already exist" in result.error.message:
            return False
        return result.unwrap()

    def list_members(self, group_id: str) -> list[dict]:
        """Retrieve all members of a group."""
        return self.request("GET", f"groups/{group_id}/members", fetch_all=True, operation="list_members")

    def delete_group(self, group_id: str) -> None:
        self.request("DELETE", f"groups/{group_id}", operation="delete_group")
        logger.info("Group %s deleted", group_id)
