"""
Response Shaper - bounds raw results into a ResponseEnvelope.

Row sets are capped at max_rows; individual field values longer than
max_field_chars are cut with a size marker. The two limits apply
independently. Errors become error envelopes with sanitized messages.
Rendering (markdown, tables) happens outside, from the envelope.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Iterable, Optional, Tuple
from uuid import UUID

from models import ErrorKind, Identifier, RawResult, ResponseEnvelope, RowSet, Scalar
from utils.error_messages import sanitize_message
from .errors import RegistryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShapeLimits:
    max_rows: int = 100
    max_field_chars: int = 2000

    @classmethod
    def from_config(cls, config) -> "ShapeLimits":
        return cls(max_rows=config.max_rows, max_field_chars=config.max_field_chars)


class ResponseShaper:

    def __init__(self, limits: Optional[ShapeLimits] = None, secrets: Iterable[str] = ()):
        self.limits = limits or ShapeLimits()
        self._secrets = tuple(secret for secret in secrets if secret)

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def _truncate_text(self, text: str) -> Tuple[str, bool]:
        limit = self.limits.max_field_chars
        if len(text) <= limit:
            return text, False
        return f"{text[:limit]}… [truncated, {len(text)} chars]", True

    def _truncate_binary(self, data: bytes) -> Tuple[str, bool]:
        # Two hex digits per byte
        preview_bytes = self.limits.max_field_chars // 2
        if len(data) <= preview_bytes:
            return data.hex(), False
        return f"{data[:preview_bytes].hex()}… [binary, {len(data)} bytes]", True

    def _value(self, value: Any) -> Tuple[Any, bool]:
        """JSON-safe, size-bounded form of one field value."""
        if value is None or isinstance(value, (bool, int, float)):
            return value, False
        if isinstance(value, str):
            return self._truncate_text(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return self._truncate_binary(bytes(value))
        if isinstance(value, (datetime, date, time)):
            return value.isoformat(), False
        if isinstance(value, timedelta):
            return str(value), False
        if isinstance(value, UUID):
            return str(value), False
        if isinstance(value, Decimal):
            # str keeps precision that float would lose
            return str(value), False
        if isinstance(value, (list, tuple)):
            truncated = False
            items = []
            for item in value:
                shaped, cut = self._value(item)
                items.append(shaped)
                truncated = truncated or cut
            return items, truncated
        if isinstance(value, dict):
            truncated = False
            shaped_dict = {}
            for key, item in value.items():
                shaped, cut = self._value(item)
                shaped_dict[str(key)] = shaped
                truncated = truncated or cut
            return shaped_dict, truncated
        return self._truncate_text(str(value))

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def shape(self, raw: RawResult, operation: Optional[str] = None) -> ResponseEnvelope:
        """Build the envelope for a successful execution."""
        if isinstance(raw, RowSet):
            return self._shape_rows(raw, operation)
        if isinstance(raw, Scalar):
            value, truncated = self._value(raw.value)
            return ResponseEnvelope.success({"kind": "scalar", "value": value}, operation, truncated)
        if isinstance(raw, Identifier):
            return ResponseEnvelope.success(
                {
                    "kind": "identifier",
                    "object_type": raw.object_type,
                    "name": raw.name,
                    "action": raw.action,
                },
                operation,
            )
        logger.error(f"Operation {operation} returned unsupported result type {type(raw).__name__}")
        return ResponseEnvelope.failure(
            ErrorKind.EXECUTION_FAILURE,
            f"Operation returned an unsupported result type: {type(raw).__name__}",
            operation,
        )

    def _shape_rows(self, raw: RowSet, operation: Optional[str]) -> ResponseEnvelope:
        total = len(raw.rows)
        kept = raw.rows[: self.limits.max_rows]
        truncated = total > self.limits.max_rows

        rows = []
        for row in kept:
            shaped_row = {}
            for key, value in row.items():
                shaped, cut = self._value(value)
                shaped_row[key] = shaped
                truncated = truncated or cut
            rows.append(shaped_row)

        payload = {
            "kind": "rows",
            "columns": list(raw.columns),
            "rows": rows,
            "row_count": len(rows),
            "total_rows": total,
        }
        if raw.status:
            payload["status"] = raw.status
        return ResponseEnvelope.success(payload, operation, truncated)

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    def sanitize(self, message: str) -> str:
        return sanitize_message(message, self._secrets)

    def shape_error(self, error: RegistryError, operation: Optional[str] = None) -> ResponseEnvelope:
        return ResponseEnvelope.failure(
            error.kind,
            self.sanitize(error.message),
            operation,
            details=error.details,
            retryable=error.retryable,
        )
