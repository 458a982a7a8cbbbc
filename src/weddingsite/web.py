"""API Gateway request accessors and the response envelope.

Every HTTP function answers with {statusCode, headers, body}, where body is
a JSON document. Failures carry {errorCode, message} so clients can branch on
a stable string instead of the status code alone.
"""

import base64
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from weddingsite.utils import json_default

# Error codes
VALIDATION_FAILED = "validation_failed"
MISSING_RECAPTCHA_TOKEN = "missing_recaptcha_token"
CAPTCHA_FAILED = "captcha_failed"
BAD_CAPTCHA = "bad_captcha"
CAPTCHA_UNAVAILABLE = "captcha_unavailable"
INTERNAL_SERVICE_ERROR = "internal_service_error"

JSON_CONTENT_TYPE = "application/json"
REQUEST_ID_HEADER = "x-request-id"
API_REQUEST_ID_HEADER = "x-api-request-id"


class ValidationError(ValueError):
    """Malformed or missing client input (always a 400)."""

    def __init__(self, message: str = "Invalid or missing input"):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class CorrelationIds:
    request_id: Optional[str] = None
    api_request_id: Optional[str] = None

    @classmethod
    def from_invocation(cls, event: Optional[dict], context) -> "CorrelationIds":
        """Pick the Lambda request id off the context and the gateway one off the event."""
        request_id = getattr(context, "aws_request_id", None)
        request_context = (event or {}).get("requestContext") or {}
        return cls(request_id=request_id, api_request_id=request_context.get("requestId"))

    def headers(self) -> Dict[str, str]:
        headers = {}
        if self.request_id:
            headers[REQUEST_ID_HEADER] = self.request_id
        if self.api_request_id:
            headers[API_REQUEST_ID_HEADER] = self.api_request_id
        return headers


def to_json(payload: Any) -> str:
    return json.dumps(payload, default=json_default, ensure_ascii=False)


def success(
    status_code: int,
    payload: Any,
    correlation: Optional[CorrelationIds] = None,
    headers: Optional[Dict[str, str]] = None,
) -> dict:
    """Build a JSON response whose body is exactly the payload."""
    response_headers = {"content-type": JSON_CONTENT_TYPE}
    if headers:
        response_headers.update(headers)
    if correlation is not None:
        response_headers.update(correlation.headers())
    return {
        "statusCode": status_code,
        "headers": response_headers,
        "body": to_json(payload),
    }


def failure(
    status_code: int,
    error_code: str,
    message: str,
    correlation: Optional[CorrelationIds] = None,
) -> dict:
    """Build a JSON error response with body {errorCode, message}."""
    return success(status_code, {"errorCode": error_code, "message": message}, correlation)


def redirect(location: str) -> dict:
    """302 for browser-facing links (unsubscribe emails)."""
    return {
        "statusCode": 302,
        "headers": {"Location": location, "Cache-Control": "no-store"},
        "body": "",
    }


# ---------------------------------------------------------------------------
# Event accessors (API Gateway v1 and v2 payloads)
# ---------------------------------------------------------------------------


def http_method(event: dict) -> str:
    request_context = event.get("requestContext") or {}
    method = (request_context.get("http") or {}).get("method") or event.get("httpMethod")
    return (method or "GET").upper()


def path_param(event: dict, name: str) -> Optional[str]:
    return (event.get("pathParameters") or {}).get(name) or None


def query_params(event: dict) -> Dict[str, str]:
    return event.get("queryStringParameters") or {}


def json_body(event: dict, required: bool = True) -> dict:
    """Parse the request body as a JSON object.

    Raises:
        ValidationError: if the body is missing (when required), not JSON,
            or not a JSON object.
    """
    raw = event.get("body")
    if not raw:
        if required:
            raise ValidationError("Missing request body")
        return {}
    if event.get("isBase64Encoded"):
        try:
            raw = base64.b64decode(raw).decode("utf-8")
        except (ValueError, UnicodeError):
            raise ValidationError("Invalid request body encoding") from None
    try:
        body = json.loads(raw)
    except ValueError:
        raise ValidationError("Invalid JSON in request body") from None
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body
