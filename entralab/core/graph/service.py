"""Shared plumbing for Graph provisioning services."""
from __future__ import annotations
from typing import Any

from entralab.config.settings import LabConfig
from .request import GraphResult, GraphTransport, graph_request


def lab_name(config: LabConfig, suffix: str) -> str:
    """Name of a lab object, e.g. ``EntraLab-Admins``."""
    return f"{config.project_name}-{suffix}"


class GraphService:
    """Base class for services issuing calls through the request wrapper.

    Fills in API version, host and page size from the lab configuration.
    """

    def __init__(self, session: GraphTransport, config: LabConfig):
        """Initialize service.

        Args:
            session: Authenticated Graph session
            config: Lab configuration
        """
        self.session = session
        self.config = config

    def _defaults(self, kwargs: dict) -> dict:
        kwargs.setdefault("api_version", self.config.api_version)
        kwargs.setdefault("host", self.config.graph_host)
        kwargs.setdefault("page_size", self.config.page_size)
        return kwargs

    def graph_request(self, method: str, uri: str, **kwargs: Any) -> GraphResult:
        return graph_request(self.session, method, uri, **self._defaults(kwargs))

    def request(self, method: str, uri: str, **kwargs: Any) -> Any:
        return self.graph_request(method, uri, **kwargs).unwrap()
