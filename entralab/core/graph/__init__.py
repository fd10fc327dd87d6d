"""Microsoft Graph client library.

Architecture:
- client.py: authenticated session (msal token cache + requests transport)
- request.py: the request wrapper (URI resolution, pagination, error logging)
- service.py: base class for provisioning services
- groups.py: group management and membership
- users.py: user lifecycle operations
- policies.py: conditional access policies
- exceptions.py: typed exceptions for error handling

Usage:
    from entralab.config import load_settings
    from entralab.core.graph import GraphSession, GroupService, invoke_graph_request

    config = load_settings()
    session = GraphSession(config)

    users = invoke_graph_request(session, "GET", "/users", api_version="v1.0", fetch_all=True)
    group_id = GroupService(session, config).create_group("EntraLab-Admins")
"""
from .client import GraphSession, build_http_session
from .exceptions import (
    GraphError,
    GraphAPIError,
    GraphAuthenticationError,
    InvalidRequestError,
    UserNotFoundError,
    GroupNotFoundError,
    PolicyNotFoundError,
)
from .request import (
    GraphErrorInfo,
    GraphResult,
    SUPPORTED_METHODS,
    expand_property,
    graph_request,
    invoke_graph_request,
    resolve_uri,
)
from .service import GraphService, lab_name
from .groups import GroupService
from .users import UserService
from .policies import ConditionalAccessService, mfa_policy_for_group

__all__ = [
    # Session
    "GraphSession",
    "build_http_session",

    # Exceptions
    "GraphError",
    "GraphAPIError",
    "GraphAuthenticationError",
    "InvalidRequestError",
    "UserNotFoundError",
    "GroupNotFoundError",
    "PolicyNotFoundError",

    # Request wrapper
    "GraphErrorInfo",
    "GraphResult",
    "SUPPORTED_METHODS",
    "expand_property",
    "graph_request",
    "invoke_graph_request",
    "resolve_uri",

    # Services
    "GraphService",
    "lab_name",
    "GroupService",
    "UserService",
    "ConditionalAccessService",
    "mfa_policy_for_group",
]
