"""reCAPTCHA verification.

Two sides:

- RecaptchaVerifier talks to Google's siteverify endpoint and classifies the
  answer into a CaptchaVerification (this is what the captcha-validator
  function returns over HTTP).
- The other functions only need a CaptchaDecision: is this a human, and if
  not, is it the user's fault (400) or an infrastructure problem (5xx)?
  LambdaCaptchaValidator gets it by invoking the captcha-validator function;
  LocalCaptchaValidator calls the verifier in-process.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import boto3
import requests
from botocore.exceptions import BotoCoreError, ClientError

from weddingsite.web import (
    CAPTCHA_FAILED,
    CAPTCHA_UNAVAILABLE,
    MISSING_RECAPTCHA_TOKEN,
    CorrelationIds,
    ValidationError,
    failure,
    json_body,
    success,
)

logger = logging.getLogger(__name__)

# Reasons
EXPIRED = "expired"
INVALID = "invalid"
DUPLICATE = "duplicate"
BAD_REQUEST = "bad-request"
SERVER_ERROR = "server-error"
NETWORK_ERROR = "network-error"
INVOKE_ERROR = "invoke-error"

CLIENT_REASONS = frozenset({EXPIRED, INVALID, DUPLICATE, BAD_REQUEST})


def classify_reason(error_codes: Iterable[str]) -> str:
    """Map siteverify error-codes to a single reason.

    See https://developers.google.com/recaptcha/docs/verify
    """
    codes = {str(c) for c in (error_codes or [])}
    if "timeout-or-duplicate" in codes:
        # could also be a duplicate; "expired" makes the client re-solve
        return EXPIRED
    if "invalid-input-response" in codes or "missing-input-response" in codes:
        return INVALID
    if "bad-request" in codes:
        return BAD_REQUEST
    # missing/invalid secret and anything unknown are our problem
    return SERVER_ERROR


@dataclass(frozen=True)
class CaptchaVerification:
    status_code: int
    success: bool
    reason: Optional[str] = None
    error_codes: List[str] = field(default_factory=list)
    challenge_ts: Optional[str] = None
    hostname: Optional[str] = None

    def to_body(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "challengeTs": self.challenge_ts, "hostname": self.hostname}
        body: Dict[str, Any] = {"success": False, "reason": self.reason}
        if self.error_codes:
            body["errorCodes"] = list(self.error_codes)
        return body


def _fail(status_code: int, reason: str, error_codes: Optional[List[str]] = None) -> CaptchaVerification:
    return CaptchaVerification(status_code=status_code, success=False, reason=reason, error_codes=error_codes or [])


class RecaptchaVerifier:
    def __init__(
        self,
        secret: Optional[str],
        verify_url: str,
        timeout: float = 3.5,
        session: Optional[requests.Session] = None,
    ):
        self.secret = secret
        self.verify_url = verify_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def verify(self, token: Optional[str], remote_ip: Optional[str] = None) -> CaptchaVerification:
        """
        Verify a reCAPTCHA response token with Google.

        Args:
            token: The g-recaptcha-response token from the browser
            remote_ip: Optional end user IP passed through to Google

        Returns:
            CaptchaVerification with the HTTP status the validator should answer with
        """
        if not token:
            logger.warning("Missing reCAPTCHA token in request body")
            return _fail(400, BAD_REQUEST, ["missing-input-response"])

        if not self.secret:
            logger.error("Missing RECAPTCHA_SECRET_KEY in environment variables")
            return _fail(500, SERVER_ERROR, ["config-missing"])

        data = {"secret": self.secret, "response": token}
        if remote_ip:
            data["remoteip"] = remote_ip

        logger.info("Calling reCAPTCHA siteverify")
        try:
            response = self.session.post(self.verify_url, data=data, timeout=self.timeout)
        except requests.exceptions.Timeout:
            logger.error("reCAPTCHA verify timeout")
            return _fail(504, NETWORK_ERROR, ["timeout"])
        except requests.exceptions.RequestException as e:
            logger.error("Network error calling reCAPTCHA: %s", e)
            return _fail(502, NETWORK_ERROR, [type(e).__name__])

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        error_codes = [str(c) for c in payload.get("error-codes") or []]
        logger.debug(
            "Google status=%s success=%s errors=%s",
            response.status_code, payload.get("success"), error_codes,
        )

        if payload.get("success"):
            logger.info("reCAPTCHA validation passed")
            return CaptchaVerification(
                status_code=200,
                success=True,
                challenge_ts=payload.get("challenge_ts"),
                hostname=payload.get("hostname"),
            )

        reason = classify_reason(error_codes)
        if reason in CLIENT_REASONS:
            logger.warning("reCAPTCHA validation failed: reason=%s codes=%s", reason, ",".join(error_codes))
            return _fail(400, reason, error_codes)

        logger.error("reCAPTCHA upstream error: reason=%s codes=%s", reason, ",".join(error_codes))
        return _fail(502, reason, error_codes)


# ---------------------------------------------------------------------------
# Caller side
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CaptchaDecision:
    is_human: bool
    status_code: int
    reason: Optional[str] = None

    @property
    def is_client_error(self) -> bool:
        """True when the user should retry the challenge, False for infrastructure trouble."""
        return not self.is_human and self.status_code == 400


HUMAN = CaptchaDecision(is_human=True, status_code=200)


def decision_from_response(status_code: int, body: Optional[Dict[str, Any]]) -> CaptchaDecision:
    """Turn a captcha-validator response into a decision."""
    body = body if isinstance(body, dict) else {}

    if status_code == 200 and body.get("success") is True:
        return HUMAN

    if status_code == 400:
        reason = body.get("reason")
        if reason is None:
            codes = body.get("errorCodes")
            reason = EXPIRED if isinstance(codes, list) and "timeout-or-duplicate" in codes else INVALID
        if reason not in CLIENT_REASONS:
            reason = INVALID
        return CaptchaDecision(is_human=False, status_code=400, reason=reason)

    if status_code in (502, 504):
        return CaptchaDecision(is_human=False, status_code=status_code, reason=NETWORK_ERROR)

    return CaptchaDecision(is_human=False, status_code=500, reason=SERVER_ERROR)


class LocalCaptchaValidator:
    """Verifies tokens in-process."""

    def __init__(self, verifier: RecaptchaVerifier):
        self.verifier = verifier

    def validate(self, token: str) -> CaptchaDecision:
        result = self.verifier.verify(token)
        return decision_from_response(result.status_code, result.to_body())


class LambdaCaptchaValidator:
    """Verifies tokens by invoking the captcha-validator function."""

    def __init__(self, function_name: Optional[str], region: Optional[str] = None, client=None):
        self.function_name = function_name
        self.client = client or boto3.client("lambda", region_name=region)

    def validate(self, token: str) -> CaptchaDecision:
        if not self.function_name:
            raise ValueError("Missing CAPTCHA_VALIDATOR_FUNCTION_NAME")

        logger.debug("Invoking captcha validator lambda: %s", self.function_name)
        # API Gateway proxy shaped event, the validator reads event["body"]
        payload = {"body": json.dumps({"token": token})}

        try:
            out = self.client.invoke(
                FunctionName=self.function_name,
                InvocationType="RequestResponse",
                Payload=json.dumps(payload).encode("utf-8"),
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Error invoking captcha validator: %s", e)
            return CaptchaDecision(is_human=False, status_code=500, reason=INVOKE_ERROR)

        if out.get("FunctionError"):
            logger.error("Captcha validator returned FunctionError: %s", out["FunctionError"])
            return CaptchaDecision(is_human=False, status_code=500, reason=INVOKE_ERROR)

        stream = out.get("Payload")
        text = stream.read().decode("utf-8") if stream is not None else ""
        if not text:
            logger.error("Captcha validator returned empty payload")
            return CaptchaDecision(is_human=False, status_code=500, reason=INVOKE_ERROR)

        try:
            res = json.loads(text)
        except ValueError:
            logger.error("Captcha validator payload is not JSON")
            return CaptchaDecision(is_human=False, status_code=500, reason=INVOKE_ERROR)
        if not isinstance(res, dict):
            logger.error("Captcha validator payload is not a JSON object")
            return CaptchaDecision(is_human=False, status_code=500, reason=INVOKE_ERROR)

        try:
            body = json.loads(res["body"]) if res.get("body") else {}
        except (TypeError, ValueError):
            body = {}

        # Never log the token; the body only has success/reason
        logger.debug("Captcha validator response: status=%s body=%s", res.get("statusCode"), body)
        return decision_from_response(res.get("statusCode", 500), body)


def check_captcha(
    validator,
    token: Optional[str],
    correlation: Optional[CorrelationIds] = None,
    missing_code: str = MISSING_RECAPTCHA_TOKEN,
    failed_code: str = CAPTCHA_FAILED,
) -> Optional[dict]:
    """Gate a request on a CAPTCHA token.

    Returns None when the caller is human, otherwise the failure response:
    400 for a missing token, 403 when the challenge was failed (the user must
    retry it), 503 when verification itself is unavailable (not the user's
    fault, retry later).
    """
    if not token:
        return failure(400, missing_code, "Missing reCAPTCHA token", correlation)

    decision = validator.validate(token)
    if decision.is_human:
        return None
    if decision.is_client_error:
        logger.warning("Failed reCAPTCHA validation: reason=%s", decision.reason)
        return failure(403, failed_code, "Failed reCAPTCHA validation", correlation)

    logger.error("reCAPTCHA verification unavailable: status=%s reason=%s", decision.status_code, decision.reason)
    return failure(
        503,
        CAPTCHA_UNAVAILABLE,
        "reCAPTCHA verification is temporarily unavailable, please retry later",
        correlation,
    )


# ---------------------------------------------------------------------------
# captcha-validator function
# ---------------------------------------------------------------------------

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Credentials": "true",
}


def handle_validate_captcha(event: dict, context, services) -> dict:
    """POST /captcha/validate, also invoked directly by the other functions."""
    source_ip = ((event.get("requestContext") or {}).get("identity") or {}).get("sourceIp", "n/a")
    # Do NOT log the token
    logger.debug("Incoming captcha request: hasBody=%s sourceIp=%s", bool(event.get("body")), source_ip)

    try:
        body = json_body(event, required=False)
    except ValidationError:
        return success(400, _fail(400, BAD_REQUEST).to_body(), headers=CORS_HEADERS)

    token = body.get("token")
    try:
        result = services.verifier.verify(token if isinstance(token, str) else None)
    except Exception:
        logger.exception("Unexpected error during reCAPTCHA validation")
        result = _fail(500, SERVER_ERROR)

    return success(result.status_code, result.to_body(), headers=CORS_HEADERS)
