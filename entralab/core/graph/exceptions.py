"""Graph-specific exceptions for error handling."""


class GraphError(Exception):
    """Base exception for all Graph operations."""
    pass


class GraphAPIError(GraphError):
    """HTTP error from Microsoft Graph.
    
    Attributes:
        status_code: HTTP status code
        message: Raw response body (usually a JSON error envelope)
        endpoint: API endpoint that failed
    """
    
    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class GraphAuthenticationError(GraphError):
    """Token acquisition failed (bad credentials, unknown tenant, consent missing)."""
    pass


class InvalidRequestError(GraphError, ValueError):
    """Request rejected before any network call (unsupported method or API version)."""
    pass


class UserNotFoundError(GraphError):
    """User lookup failed - user principal name does not exist."""
    pass


class GroupNotFoundError(GraphError):
    """Group does not exist in the tenant."""
    pass


class PolicyNotFoundError(GraphError):
    """Conditional access policy does not exist."""
    pass
