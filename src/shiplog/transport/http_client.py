"""
HTTP delivery to the Parseable ingestion endpoint.

``ParseableHttpSender`` owns one pooled ``httpx.AsyncClient`` and performs a
single authenticated POST per batch. It does not retry; retry policy lives
in the transport, which decides what to requeue after a failure.
"""

from __future__ import annotations

import base64
from typing import Mapping, Protocol, runtime_checkable

import httpx

from ..core.errors import ConfigurationError, DeliveryError
from ..core.otlp import INGEST_PATH, LOG_SOURCE
from ..core.settings import TransportConfig

STREAM_HEADER = "X-P-Stream"
LOG_SOURCE_HEADER = "X-P-Log-Source"

_PROTOCOL_HEADERS = frozenset(
    h.lower()
    for h in ("Content-Type", "Authorization", STREAM_HEADER, LOG_SOURCE_HEADER)
)


@runtime_checkable
class BatchSender(Protocol):
    """Anything able to deliver one encoded batch.

    ``send`` returns on success and raises on any failure.
    """

    async def start(self) -> None:  # Optional lifecycle hook
        ...

    async def stop(self) -> None:  # Optional lifecycle hook
        ...

    async def send(self, payload: bytes) -> None: ...


def basic_auth_header(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
    return f"Basic {token}"


def resolve_ingest_url(endpoint_url: str) -> httpx.URL:
    """Validate ``endpoint_url`` and return the absolute ingestion URL.

    Only the scheme, host and port of the endpoint are used; the path is
    always :data:`INGEST_PATH`.

    Raises:
        ConfigurationError: If the URL is malformed or not http(s).
    """
    try:
        url = httpx.URL(endpoint_url.strip())
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise ConfigurationError(
            "Invalid endpoint URL", cause=exc, endpoint=endpoint_url
        ) from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationError(
            "Endpoint URL must be an absolute http(s) URL", endpoint=endpoint_url
        )
    return httpx.URL(scheme=url.scheme, host=url.host, port=url.port, path=INGEST_PATH)


class ParseableHttpSender:
    """POST encoded OTLP batches with Basic auth and stream routing headers."""

    name = "parseable-http"

    def __init__(
        self,
        *,
        ingest_url: httpx.URL | None,
        username: str,
        password: str,
        stream: str,
        timeout_seconds: float = 10.0,
        extra_headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        config_error: ConfigurationError | None = None,
    ) -> None:
        self._ingest_url = ingest_url
        self._config_error = config_error
        self._timeout = timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        headers = {
            k: v
            for k, v in (extra_headers or {}).items()
            if k.lower() not in _PROTOCOL_HEADERS
        }
        headers.update(
            {
                "Content-Type": "application/json",
                "Authorization": basic_auth_header(username, password),
                STREAM_HEADER: stream,
                LOG_SOURCE_HEADER: LOG_SOURCE,
            }
        )
        self._headers = headers
        self.last_status: int | None = None
        self.last_error: str | None = None

    @classmethod
    def from_config(
        cls,
        config: TransportConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ParseableHttpSender:
        """Build a sender; a malformed endpoint yields a sender that always fails."""
        ingest_url: httpx.URL | None
        config_error: ConfigurationError | None = None
        try:
            ingest_url = resolve_ingest_url(config.endpoint_url)
        except ConfigurationError as exc:
            ingest_url = None
            config_error = exc
        return cls(
            ingest_url=ingest_url,
            username=config.username,
            password=config.password.get_secret_value(),
            stream=config.stream,
            timeout_seconds=config.request_timeout_seconds,
            extra_headers=config.headers,
            transport=transport,
            config_error=config_error,
        )

    @property
    def ingest_url(self) -> httpx.URL | None:
        return self._ingest_url

    @property
    def config_error(self) -> ConfigurationError | None:
        return self._config_error

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )

    async def stop(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    async def send(self, payload: bytes) -> None:
        """Deliver one batch.

        Raises:
            ConfigurationError: The endpoint URL was unusable.
            DeliveryError: Non-2xx status, timeout or transport failure.
        """
        if self._ingest_url is None:
            self.last_error = str(self._config_error or "endpoint not configured")
            raise self._config_error or ConfigurationError("Endpoint not configured")
        if self._client is None:
            await self.start()
        client = self._client
        if client is None:
            self.last_error = "HTTP client not started"
            raise DeliveryError("HTTP client not started")
        try:
            resp = await client.post(
                self._ingest_url, content=payload, headers=self._headers
            )
        except httpx.TimeoutException as exc:
            self.last_status = None
            self.last_error = "request timeout"
            raise DeliveryError("Request timeout", cause=exc) from exc
        except httpx.HTTPError as exc:
            self.last_status = None
            self.last_error = str(exc)
            raise DeliveryError(f"Network error: {exc}", cause=exc) from exc
        self.last_status = resp.status_code
        if not 200 <= resp.status_code < 300:
            snippet: str | None
            try:
                snippet = resp.text[:256]
            except Exception:
                snippet = None
            self.last_error = f"HTTP {resp.status_code}"
            raise DeliveryError(
                f"HTTP {resp.status_code}", status_code=resp.status_code, body=snippet
            )
        self.last_error = None

    async def health_check(self) -> bool:
        return (
            self.last_error is None
            and self.last_status is not None
            and 200 <= self.last_status < 300
        )
