from __future__ import annotations
from typing import Any, Dict, Optional


class MatchError(Exception):
    """
    Base for request-scoped failures of the matching pipeline.
    Each subclass knows the HTTP status it maps to; the app turns it into
    {"error": ..., "rawResponse": ...}.
    """
    status_code = 500

    def __init__(self, message: str, raw_response: Optional[str] = None):
        self.message = message
        self.raw_response = raw_response
        super().__init__(message)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message}
        if self.raw_response is not None:
            payload["rawResponse"] = self.raw_response
        return payload


class ConfigurationError(MatchError):
    status_code = 500


class InputError(MatchError):
    status_code = 400


class InvocationError(MatchError):
    status_code = 500


class ParseError(MatchError):
    status_code = 500


class SchemaError(MatchError):
    status_code = 500
