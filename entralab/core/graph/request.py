"""Generic Microsoft Graph request wrapper.

Every call to Graph goes through ``graph_request`` (returns a GraphResult)
or ``invoke_graph_request`` (returns the value or raises the original
error). The wrapper:

- builds the absolute URL from a relative path and an API version
- forwards the call to a GraphSession
- follows ``@odata.nextLink`` and flattens pages when asked to
- logs progress and failures, tagged with the calling operation

It performs no retries and keeps no state between calls.
"""
from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Protocol, Union

from entralab.config.settings import API_VERSIONS
from entralab.core.log import OperationAdapter, operation_logger
from .exceptions import InvalidRequestError

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("GET", "POST", "PATCH", "PUT", "DELETE")
DEFAULT_HOST = "graph.microsoft.com"
DEFAULT_API_VERSION = "beta"
DEFAULT_PAGE_SIZE = 100
NEXT_LINK = "@odata.nextLink"

Projection = Callable[[Any], Any]


class GraphTransport(Protocol):
    """What the wrapper needs from a session (GraphSession satisfies it)."""

    def send(self, method: str, uri: str, headers: Optional[Mapping[str, str]] = None,
             content_type: str = "application/json", body: Any = None) -> Any:
        ...


@dataclass
class GraphErrorInfo:
    """Structured description of a failed request."""
    status_code: Optional[int]
    detail: Any
    cause: BaseException

    @property
    def message(self) -> str:
        return str(self.cause)


@dataclass
class GraphResult:
    """Either the normalized response (``value``) or a ``GraphErrorInfo``."""
    value: Any = None
    error: Optional[GraphErrorInfo] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return the value, or re-raise the original error unchanged."""
        if self.error is not None:
            raise self.error.cause
        return self.value


def expand_property(name: str) -> Projection:
    """Build a projection that returns the ``name`` field of a response."""
    def _project(response: Any) -> Any:
        if isinstance(response, Mapping):
            return response.get(name)
        return None

    _project.__name__ = f"expand_{name}"
    return _project


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, bytes, list, tuple, dict, set)):
        return len(value) == 0
    return False


def resolve_api_version(api_version: str) -> str:
    """Map an API version tag (v1.0, beta, stable, preview) to its URL segment."""
    segment = API_VERSIONS.get(str(api_version).strip().lower())
    if segment is None:
        raise InvalidRequestError(
            f"Unsupported API version '{api_version}'; expected one of {sorted(API_VERSIONS)}"
        )
    return segment


def resolve_uri(
    uri: str,
    api_version: str = DEFAULT_API_VERSION,
    host: str = DEFAULT_HOST,
    log: Optional[Union[logging.Logger, OperationAdapter]] = None,
) -> str:
    """Turn a relative Graph path into an absolute URL.

    ``"/users"`` with ``"v1.0"`` -> ``https://graph.microsoft.com/v1.0/users``.
    Absolute ``https://`` URIs are returned unchanged with a warning.
    """
    if uri.lower().startswith("https://"):
        (log or logger).warning(
            "Absolute URI passed to the Graph wrapper, using it as-is: %s", uri
        )
        return uri
    segment = resolve_api_version(api_version)
    return f"https://{host}/{segment}/{uri.lstrip('/')}"


def add_page_size(uri: str, page_size: int) -> str:
    """Append ``$top=<page_size>`` unless page_size <= 0 or $top is already set."""
    if page_size <= 0 or "$top=" in uri:
        return uri
    separator = "&" if "?" in uri else "?"
    return f"{uri}{separator}$top={page_size}"


def shape_response(response: Any, method: str, expand: Optional[Projection] = None) -> Any:
    """Pick the part of a single response the caller wants.

    Priority: non-empty projection, then the ``value`` envelope (GET only),
    then the raw response.
    """
    if expand is not None:
        projected = expand(response)
        if not _is_empty(projected):
            return projected
    if method == "GET" and isinstance(response, Mapping) and "value" in response:
        return response["value"]
    return response


def _page_records(page: Any, expand: Optional[Projection]) -> List[Any]:
    if expand is not None:
        projected = expand(page)
        if not _is_empty(projected):
            return list(projected) if isinstance(projected, list) else [projected]
    if isinstance(page, Mapping) and "value" in page:
        value = page["value"]
        return list(value) if isinstance(value, list) else [value]
    return [page]


def _preview(payload: Any, limit: int = 500) -> str:
    try:
        text = json.dumps(payload, default=str)
    except (TypeError, ValueError):
        text = repr(payload)
    return text if len(text) <= limit else f"{text[:limit]}... ({len(text)} chars)"


def _status_code_of(error: BaseException) -> Optional[int]:
    status = getattr(error, "status_code", None)
    if status is None:
        response = getattr(error, "response", None)
        status = getattr(response, "status_code", None)
    return status


def _raw_error_detail(error: BaseException) -> Optional[str]:
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    response = getattr(error, "response", None)
    text = getattr(response, "text", None)
    return text or None


def describe_error(error: BaseException, log: Union[logging.Logger, OperationAdapter]) -> GraphErrorInfo:
    """Log a failure with its status code and error payload and wrap it.

    The payload is parsed as JSON when possible and logged as plain text
    otherwise.
    """
    status_code = _status_code_of(error)
    log.error("Graph request failed (status %s): %s", status_code if status_code is not None else "n/a", error)

    raw = _raw_error_detail(error)
    detail: Any = None
    if raw:
        try:
            detail = json.loads(raw)
        except (TypeError, ValueError):
            detail = raw
            log.error("Error detail (text): %s", raw)
        else:
            log.error("Error detail: %s", json.dumps(detail, indent=2, default=str))
    return GraphErrorInfo(status_code=status_code, detail=detail, cause=error)


def _fetch_all_pages(
    session: GraphTransport,
    uri: str,
    headers: Optional[Mapping[str, str]],
    content_type: str,
    expand: Optional[Projection],
    page_size: int,
    log: OperationAdapter,
) -> List[Any]:
    next_uri: Optional[str] = add_page_size(uri, page_size)
    results: List[Any] = []
    page = 0

    while next_uri:
        page += 1
        log.info("Fetching page %d", page)
        log.debug("GET %s", next_uri)
        response = session.send("GET", next_uri, headers=headers, content_type=content_type)
        log.debug("Page %d response: %s", page, _preview(response))
        results.extend(_page_records(response, expand))
        next_uri = response.get(NEXT_LINK) if isinstance(response, Mapping) else None

    log.info("Retrieved %d record(s) across %d page(s)", len(results), page)
    return results


def graph_request(
    session: GraphTransport,
    method: str,
    uri: str,
    body: Any = None,
    headers: Optional[Mapping[str, str]] = None,
    api_version: str = DEFAULT_API_VERSION,
    content_type: str = "application/json",
    expand: Optional[Union[Projection, str]] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    fetch_all: bool = False,
    host: str = DEFAULT_HOST,
    operation: Optional[str] = None,
) -> GraphResult:
    """Send a request to Microsoft Graph and normalize the response.

    Args:
        session: Authenticated session (GraphSession)
        method: GET, POST, PATCH, PUT or DELETE (case-insensitive)
        uri: Path relative to the API version root, or an absolute URL
        body: Payload, ignored for GET
        headers: Extra request headers
        api_version: v1.0/beta (or stable/preview)
        content_type: Content-Type of the payload
        expand: Projection selecting the records from a response, or a field name
        page_size: $top for paginated requests; <= 0 disables it
        fetch_all: Follow @odata.nextLink and flatten every page (GET only)
        host: Graph host
        operation: Name used to tag log records

    Returns:
        GraphResult with the normalized value, or the error that occurred.
        Pages fetched before a failure are discarded.

    Raises:
        InvalidRequestError: For an unsupported method or API version
    """
    log = operation_logger(logger, operation or "graph_request")
    log.trace("Entering: %s %s", method, uri)

    verb = str(method).strip().upper()
    if verb not in SUPPORTED_METHODS:
        raise InvalidRequestError(f"Unsupported HTTP method '{method}'; expected one of {SUPPORTED_METHODS}")

    projection = expand_property(expand) if isinstance(expand, str) else expand
    target = resolve_uri(uri, api_version, host, log)

    try:
        if verb == "GET" and fetch_all:
            value = _fetch_all_pages(session, target, headers, content_type, projection, page_size, log)
        else:
            if fetch_all:
                log.debug("fetch_all ignored for %s", verb)
            payload = body if verb != "GET" else None
            log.info("%s %s", verb, target)
            if payload is not None:
                log.debug("Request body: %s", _preview(payload))
            response = session.send(verb, target, headers=headers, content_type=content_type, body=payload)
            log.debug("Response: %s", _preview(response))
            value = shape_response(response, verb, projection)
    except Exception as error:
        info = describe_error(error, log)
        log.trace("Leaving with error: %s %s", verb, target)
        return GraphResult(error=info)

    log.trace("Leaving: %s %s", verb, target)
    return GraphResult(value=value)


def invoke_graph_request(session: GraphTransport, method: str, uri: str, **kwargs: Any) -> Any:
    """Like graph_request, but return the value or re-raise the original error.

    Accepts the same keyword arguments as graph_request.
    """
    return graph_request(session, method, uri, **kwargs).unwrap()
