import base64
import json
from decimal import Decimal
from types import SimpleNamespace

import pytest

from weddingsite.web import (
    CorrelationIds,
    ValidationError,
    failure,
    http_method,
    json_body,
    redirect,
    success,
)


class TestEnvelope:
    def test_failure_body(self):
        response = failure(400, "validation_failed", "x")
        assert response["statusCode"] == 400
        assert json.loads(response["body"]) == {"errorCode": "validation_failed", "message": "x"}
        assert response["headers"]["content-type"] == "application/json"

    def test_success_body_is_payload(self):
        payload = {"elements": [], "hasNext": False}
        response = success(200, payload)
        assert json.loads(response["body"]) == payload

    def test_success_echoes_correlation_headers(self):
        ids = CorrelationIds(request_id="lambda-123", api_request_id="gw-456")
        response = success(201, {}, ids)
        assert response["headers"]["x-request-id"] == "lambda-123"
        assert response["headers"]["x-api-request-id"] == "gw-456"

    def test_no_correlation_headers_when_absent(self):
        response = success(200, {}, CorrelationIds())
        assert set(response["headers"]) == {"content-type"}

    def test_failure_carries_correlation_headers(self):
        ids = CorrelationIds(request_id="lambda-123")
        response = failure(500, "internal_service_error", "boom", ids)
        assert response["headers"]["x-request-id"] == "lambda-123"

    def test_decimal_payload(self):
        assert json.loads(success(200, {"n": Decimal("3")})["body"]) == {"n": 3}

    def test_string_payload(self):
        assert json.loads(success(200, "Message sent successfully!")["body"]) == "Message sent successfully!"

    def test_redirect(self):
        response = redirect("https://site.example.com/unsubscribe?status=ok")
        assert response["statusCode"] == 302
        assert response["headers"]["Location"] == "https://site.example.com/unsubscribe?status=ok"
        assert response["headers"]["Cache-Control"] == "no-store"
        assert response["body"] == ""


class TestCorrelationIds:
    def test_from_invocation(self):
        event = {"requestContext": {"requestId": "gw-1"}}
        context = SimpleNamespace(aws_request_id="lambda-1")
        assert CorrelationIds.from_invocation(event, context) == CorrelationIds("lambda-1", "gw-1")

    def test_tolerates_missing_parts(self):
        assert CorrelationIds.from_invocation({}, None) == CorrelationIds()


class TestEventAccessors:
    def test_http_method_v2(self):
        assert http_method({"requestContext": {"http": {"method": "delete"}}}) == "DELETE"

    def test_http_method_v1(self):
        assert http_method({"httpMethod": "POST"}) == "POST"

    def test_http_method_default(self):
        assert http_method({}) == "GET"

    def test_json_body(self):
        assert json_body({"body": '{"a": 1}'}) == {"a": 1}

    def test_json_body_base64(self):
        raw = base64.b64encode(b'{"a": 1}').decode()
        assert json_body({"body": raw, "isBase64Encoded": True}) == {"a": 1}

    def test_json_body_missing(self):
        with pytest.raises(ValidationError):
            json_body({})
        assert json_body({}, required=False) == {}

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", '"text"'])
    def test_json_body_rejects_non_objects(self, raw):
        with pytest.raises(ValidationError):
            json_body({"body": raw})
