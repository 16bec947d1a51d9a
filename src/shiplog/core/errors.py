"""
Error types raised inside shiplog.

None of these ever reach the log-producing caller: the transport catches
them at its boundary and reports them through diagnostics. They exist so
internal layers can signal *why* something failed (bad configuration,
unencodable payload, rejected delivery) and so tests can assert on it.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Coarse error categories used in diagnostics output."""

    CONFIG = "config"
    SERIALIZATION = "serialization"
    NETWORK = "network"


class ShiplogError(Exception):
    """Base class for all shiplog errors."""

    category: ErrorCategory = ErrorCategory.NETWORK

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        cause: BaseException | None = None,
        **context: Any,
    ) -> None:
        super().__init__(message)
        if category is not None:
            self.category = category
        self.cause = cause
        self.context = dict(context)

    def to_fields(self) -> dict[str, Any]:
        """Flatten the error into diagnostics fields."""
        fields: dict[str, Any] = {
            "error_type": type(self).__name__,
            "error": str(self),
            "category": self.category.value,
        }
        if self.cause is not None:
            fields["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        fields.update(self.context)
        return fields


class ConfigurationError(ShiplogError):
    """Transport configuration is unusable (e.g. malformed endpoint URL)."""

    category = ErrorCategory.CONFIG


class SerializationError(ShiplogError):
    """A batch could not be encoded into the wire payload."""

    category = ErrorCategory.SERIALIZATION


class DeliveryError(ShiplogError):
    """The ingestion endpoint did not accept a batch.

    ``status_code`` is set for HTTP-level rejections and ``None`` for
    transport-level failures such as timeouts or refused connections.
    """

    category = ErrorCategory.NETWORK

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.status_code = status_code
        self.body = body

    def to_fields(self) -> dict[str, Any]:
        fields = super().to_fields()
        if self.status_code is not None:
            fields["status_code"] = self.status_code
        if self.body:
            fields["body"] = self.body
        return fields


__all__ = [
    "ConfigurationError",
    "DeliveryError",
    "ErrorCategory",
    "SerializationError",
    "ShiplogError",
]
