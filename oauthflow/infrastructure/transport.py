"""
HTTP transport for the authorization flows.

Wraps httpx behind a small client/request/execute contract so the engines
and provider hooks can build and mutate a request before it is sent.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx

from oauthflow.core.domain import Endpoint
from oauthflow.core.exceptions import TransportError


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
USER_AGENT = "oauthflow/0.1"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# Keep error messages readable when a provider returns an HTML page
_CONTENT_EXCERPT = 500


@dataclass
class RestRequest:
    """
    A mutable outgoing request.

    parameters go to the query string for GET requests and to a form body
    otherwise; query_parameters always go to the query string.
    """

    resource: str = ""
    method: str = "GET"
    parameters: list[tuple[str, str]] = field(default_factory=list)
    query_parameters: list[tuple[str, str]] = field(default_factory=list)
    headers: dict[str, str] = field(default_factory=dict)

    def add_parameter(self, name: str, value: Any) -> "RestRequest":
        """Add a parameter; None values are skipped."""
        if value is not None:
            self.parameters.append((name, str(value)))
        return self

    def add_parameters(self, values: Mapping[str, Any]) -> "RestRequest":
        """Add several parameters in mapping order; None values are skipped."""
        for name, value in values.items():
            self.add_parameter(name, value)
        return self

    def add_query_parameter(self, name: str, value: Any) -> "RestRequest":
        """Add a parameter that always travels in the query string."""
        if value is not None:
            self.query_parameters.append((name, str(value)))
        return self

    def add_header(self, name: str, value: str) -> "RestRequest":
        self.headers[name] = value
        return self

    def get_parameter(self, name: str) -> str | None:
        """First value of a parameter, or None."""
        for key, value in self.parameters:
            if key == name:
                return value
        return None

    def remove_parameter(self, name: str) -> None:
        self.parameters = [(key, value) for key, value in self.parameters if key != name]

    @property
    def sends_body(self) -> bool:
        return self.method.upper() not in ("GET", "HEAD", "DELETE")


@dataclass
class RestClient:
    """
    Client bound to one endpoint's base URI.

    authenticator is an httpx.Auth strategy applied when the request is
    executed. Hooks may replace it.
    """

    base_uri: str
    authenticator: httpx.Auth | None = None

    def resource_url(self, request: RestRequest) -> str:
        """Base URI joined with the request's resource, without added parameters."""
        return Endpoint(base_uri=self.base_uri, resource_path=request.resource).uri

    def build_uri(self, request: RestRequest) -> str:
        """
        Compose the absolute URI for a request, including its query string.

        A query string already present on the resource path is preserved.
        """
        scheme, netloc, path, query, fragment = urlsplit(self.resource_url(request))
        pairs = parse_qsl(query, keep_blank_values=True)
        if not request.sends_body:
            pairs.extend(request.parameters)
        pairs.extend(request.query_parameters)
        return urlunsplit((scheme, netloc, path, urlencode(pairs), fragment))


class _BaseRequestFactory:
    """Shared request construction and response verification."""

    def __init__(self, transport: Any = None, timeout: float = DEFAULT_TIMEOUT):
        self._transport = transport
        self._timeout = timeout

    def create_client(self, endpoint: Endpoint) -> RestClient:
        return RestClient(base_uri=endpoint.base_uri)

    def create_request(self, endpoint: Endpoint, method: str = "GET") -> RestRequest:
        return RestRequest(resource=endpoint.resource_path, method=method.upper())

    def _prepare(
        self, client: RestClient, request: RestRequest
    ) -> tuple[str, bytes | None, dict[str, str]]:
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
        headers.update(request.headers)

        url = client.build_uri(request)
        content = None
        if request.sends_body:
            content = urlencode(request.parameters).encode("utf-8")
            headers.setdefault("Content-Type", FORM_CONTENT_TYPE)
        return url, content, headers

    def _verify(
        self, client: RestClient, request: RestRequest, response: httpx.Response
    ) -> httpx.Response:
        if 200 <= response.status_code < 400:
            return response

        target = client.resource_url(request).split("?", 1)[0]
        logger.error(
            f"{request.method} {target} failed with status {response.status_code}",
            extra={"status_code": response.status_code},
        )
        raise TransportError(
            f"{request.method} {target} returned HTTP {response.status_code}",
            status_code=response.status_code,
            content=response.text[:_CONTENT_EXCERPT],
        )

    def _network_error(
        self, client: RestClient, request: RestRequest, error: httpx.RequestError
    ) -> TransportError:
        target = client.resource_url(request).split("?", 1)[0]
        logger.error(f"Network error during {request.method} {target}: {error}")
        return TransportError(f"Network error during {request.method} {target}: {error}")


class RequestFactory(_BaseRequestFactory):
    """
    Blocking transport.

    Args:
        transport: Optional httpx transport (e.g. httpx.MockTransport)
        timeout: Request timeout in seconds
    """

    def execute(self, client: RestClient, request: RestRequest) -> httpx.Response:
        """
        Send a request and return the verified response.

        Raises:
            TransportError: On network failure or a non 2xx/3xx status
        """
        url, content, headers = self._prepare(client, request)
        try:
            with httpx.Client(
                transport=self._transport, timeout=self._timeout, follow_redirects=True
            ) as http:
                response = http.request(
                    request.method,
                    url,
                    content=content,
                    headers=headers,
                    auth=client.authenticator,
                )
        except httpx.RequestError as e:
            raise self._network_error(client, request, e) from e

        return self._verify(client, request, response)


class AsyncRequestFactory(_BaseRequestFactory):
    """Non-blocking transport with the same contract as RequestFactory."""

    async def execute(self, client: RestClient, request: RestRequest) -> httpx.Response:
        """
        Send a request and return the verified response.

        Raises:
            TransportError: On network failure or a non 2xx/3xx status
        """
        url, content, headers = self._prepare(client, request)
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout, follow_redirects=True
            ) as http:
                response = await http.request(
                    request.method,
                    url,
                    content=content,
                    headers=headers,
                    auth=client.authenticator,
                )
        except httpx.RequestError as e:
            raise self._network_error(client, request, e) from e

        return self._verify(client, request, response)
