from __future__ import annotations

from typing import Any


class PricingError(Exception):
    def __init__(
        self,
        code: str,
        message: str,
        *,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Create a structured pricing exception for API and engine layers."""
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class ValidationError(PricingError):
    """Malformed or mismatched calculation input, tagged with its field."""

    def __init__(
        self,
        field: str,
        message: str,
        *,
        rule: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"field": field}
        if rule is not None:
            payload["rule"] = rule
        payload.update(details or {})
        super().__init__("VALIDATION_ERROR", message, details=payload)
        self.field = field
        self.rule = rule
