"""Typed error documents returned by the delivery-configs API."""

import json
from dataclasses import dataclass, field


def _int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _str(value) -> str:
    return "" if value is None else str(value)


@dataclass
class PublishErrorBody:
    """Error details embedded in a publish rejection."""

    message: str = ""
    timestamp: str = ""
    status: int = 0
    error: str = ""

    @classmethod
    def from_value(cls, value) -> "PublishErrorBody":
        """Build from the ``body`` field, which the API sends as escaped JSON in a string."""
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                return cls(message=value)
        if not isinstance(value, dict):
            return cls()
        return cls(
            message=_str(value.get("message")),
            timestamp=_str(value.get("timestamp")),
            status=_int(value.get("status")),
            error=_str(value.get("error")),
        )


@dataclass
class PublishError:
    """Error document returned when a delivery config publish is rejected."""

    timestamp: int = 0
    status: int = 0
    error: str = ""
    message: str = ""
    url: str = ""
    body: PublishErrorBody = field(default_factory=PublishErrorBody)

    @property
    def detail(self) -> str:
        """Most specific message available: the body's, else the envelope's."""
        return self.body.message or self.message or self.error

    @classmethod
    def from_dict(cls, d) -> "PublishError":
        if not isinstance(d, dict):
            raise ValueError(f"expected a JSON object, got {type(d).__name__}")
        return cls(
            timestamp=_int(d.get("timestamp")),
            status=_int(d.get("status")),
            error=_str(d.get("error")),
            message=_str(d.get("message")),
            url=_str(d.get("url")),
            body=PublishErrorBody.from_value(d.get("body")),
        )


@dataclass
class ValidationErrorDetail:
    """Validation failure from ``/managed/delivery-configs/validate``.

    The location of the offending node is read from the top level or from
    ``details`` (``pathExpression`` and ``location.line/column``).
    """

    error: str = ""
    status: int = 0
    message: str = ""
    path_expression: str = ""
    line: int = 0
    column: int = 0

    def __str__(self):
        text = self.message or self.error
        if self.path_expression:
            text = f"{text} (at {self.path_expression})"
        if self.line:
            text = f"{text} [line {self.line}, column {self.column}]"
        return text

    @classmethod
    def from_dict(cls, d) -> "ValidationErrorDetail":
        if not isinstance(d, dict):
            raise ValueError(f"expected a JSON object, got {type(d).__name__}")
        details = d.get("details") if isinstance(d.get("details"), dict) else {}
        location = details.get("location") if isinstance(details.get("location"), dict) else {}
        return cls(
            error=_str(d.get("error")),
            status=_int(d.get("status")),
            message=_str(d.get("message")),
            path_expression=_str(d.get("pathExpression") or details.get("pathExpression")),
            line=_int(d.get("line") or location.get("line")),
            column=_int(d.get("column") or location.get("column")),
        )
