"""Conditional access policy operations."""
from __future__ import annotations
import logging
from typing import Optional

from .exceptions import PolicyNotFoundError
from .service import GraphService

logger = logging.getLogger(__name__)

POLICIES_PATH = "identity/conditionalAccess/policies"
REPORT_ONLY = "enabledForReportingButNotEnforced"
POLICY_STATES = ("enabled", "disabled", REPORT_ONLY)


def mfa_policy_for_group(group_id: str) -> tuple[dict, dict]:
    """Conditions and grant controls requiring MFA for every app, scoped to a group."""
    conditions = {
        "users": {"includeGroups": [group_id]},
        "applications": {"includeApplications": ["All"]},
        "clientAppTypes": ["all"],
    }
    grant_controls = {"operator": "OR", "builtInControls": ["mfa"]}
    return conditions, grant_controls


class ConditionalAccessService(GraphService):
    """Service for managing conditional access policies."""

    def list_policies(self) -> list[dict]:
        return self.request("GET", POLICIES_PATH, fetch_all=True, operation="list_policies")

    def get_policy_by_name(self, display_name: str) -> Optional[dict]:
        for policy in self.list_policies():
            if policy.get("displayName") == display_name:
                return policy
        return None

    def create_policy(
        self,
        display_name: str,
        conditions: dict,
        grant_controls: dict,
        state: str = REPORT_ONLY,
    ) -> str:
        """Idempotently create a policy and return its ID.

        New policies default to report-only so a lab never locks anyone out.

        Raises:
            ValueError: If state is not a valid policy state
        """
        if state not in POLICY_STATES:
            raise ValueError(f"Invalid policy state '{state}': expected one of {POLICY_STATES}")

        existing = self.get_policy_by_name(display_name)
        if existing:
            logger.info("Policy '%s' already exists (id=%s)", display_name, existing["id"])
            return existing["id"]

        payload = {
            "displayName": display_name,
            "state": state,
            "conditions": conditions,
            "grantControls": grant_controls,
        }
        created = self.request("POST", POLICIES_PATH, body=payload, operation="create_policy")
        logger.info("Policy '%s' created (id=%s, state=%s)", display_name, created["id"], state)
        return created["id"]

    def delete_policy_by_name(self, display_name: str) -> None:
        """Delete a policy by display name.

        Raises:
            PolicyNotFoundError: If no policy has that name
        """
        policy = self.get_policy_by_name(display_name)
        if policy is None:
            raise PolicyNotFoundError(f"Policy '{display_name}' not found")
        self.request("DELETE", f"{POLICIES_PATH}/{policy['id']}", operation="delete_policy")
        logger.info("Policy '%s' deleted", display_name)
