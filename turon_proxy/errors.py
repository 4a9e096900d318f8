"""
Error taxonomy for the chat proxy.

Every error carries the HTTP status it maps to and a machine-readable kind, so the
API layer can render it without knowing where it came from.
"""

from typing import Any, Dict, Optional


class ProxyError(Exception):
    """Base class for all errors surfaced to the caller."""

    kind = "server_error"
    status_code = 500

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        """Render the error as a JSON-serialisable response body."""
        body: Dict[str, Any] = {"error": self.message, "kind": self.kind}
        if self.detail is not None:
            body["detail"] = self.detail
        return body


class BadRequest(ProxyError):
    """The incoming request did not carry a usable question."""

    kind = "bad_request"
    status_code = 400


class ConfigError(ProxyError):
    """Required remote credentials or model identifier are not configured."""

    kind = "config_error"
    status_code = 500


class RemoteError(ProxyError):
    """Transport failure or non-success status from the prediction API."""

    kind = "remote_error"
    status_code = 502


class PredictionFailed(ProxyError):
    """The prediction API reported the job as failed or canceled."""

    kind = "prediction_failed"
    status_code = 502


class PredictionTimeout(ProxyError):
    """The poll ceiling was reached; the job may still finish remotely."""

    kind = "prediction_timeout"
    status_code = 504
