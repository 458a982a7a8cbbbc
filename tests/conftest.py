"""Shared fixtures: in-memory collaborators and API Gateway event builders."""

import io
import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from botocore.exceptions import ClientError

from weddingsite.captcha import HUMAN, RecaptchaVerifier
from weddingsite.config import Settings
from weddingsite.messaging import SnsPublisher
from weddingsite.models import COMMENT_SORT_KEY, Comment
from weddingsite.services import Services


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeStore:
    """Ordered key-value store with DynamoDB's query semantics.

    - Items come back ordered by sort key, reversed when scan_forward=False.
    - Hitting `limit` always yields a continuation key, even on the last item.
    - `page_cap` emulates the 1 MB response cap: a page stops early and
      carries a continuation key if more items remain.
    """

    def __init__(self, partition_key, sort_key, index_keys=None, page_cap=None):
        self.partition_key = partition_key
        self.sort_key = sort_key
        self.index_keys = dict(index_keys or {})
        self.page_cap = page_cap
        self.items = {}
        self.queries = []
        self.error = None

    def _key_of(self, item):
        return {self.partition_key: item[self.partition_key], self.sort_key: item[self.sort_key]}

    def query(self, partition_value, continuation_key=None, limit=None, scan_forward=True,
              projection=None, count_only=False, index_name=None):
        self.queries.append(dict(
            partition_value=partition_value, continuation_key=continuation_key, limit=limit,
            scan_forward=scan_forward, count_only=count_only, index_name=index_name,
        ))
        if self.error is not None:
            raise self.error

        key_name = self.index_keys.get(index_name, self.partition_key) if index_name else self.partition_key
        ordered = sorted(
            (i for i in self.items.values() if i.get(key_name) == partition_value),
            key=lambda i: i[self.sort_key],
            reverse=not scan_forward,
        )
        if continuation_key:
            last = continuation_key[self.sort_key]
            if scan_forward:
                ordered = [i for i in ordered if i[self.sort_key] > last]
            else:
                ordered = [i for i in ordered if i[self.sort_key] < last]

        stop = limit
        if self.page_cap is not None and (stop is None or self.page_cap < stop):
            stop = self.page_cap
        page = ordered if stop is None else ordered[:stop]

        next_key = None
        if stop is not None and len(page) == stop and (stop == limit or len(ordered) > stop):
            next_key = self._key_of(page[-1])

        items = [] if count_only else [dict(i) for i in page]
        if projection and not count_only:
            items = [{k: v for k, v in i.items() if k in projection} for i in items]
        return SimpleNamespace(items=items, continuation_key=next_key, count=len(page))

    def put_if_absent(self, item):
        key = (item[self.partition_key], item[self.sort_key])
        if key in self.items:
            return False
        self.items[key] = dict(item)
        return True

    def delete_returning_old(self, key):
        return self.items.pop((key[self.partition_key], key[self.sort_key]), None)


class FakeSnsClient:
    """Stands in for boto3's SNS client."""

    def __init__(self):
        self.published = []
        self.error = None

    def publish(self, **kwargs):
        if self.error is not None:
            raise self.error
        self.published.append(kwargs)
        return {"MessageId": f"msg-{len(self.published)}"}

    def messages(self, topic_arn=None):
        return [
            json.loads(p["Message"]) for p in self.published
            if topic_arn is None or p["TopicArn"] == topic_arn
        ]


class FakeMailer:
    from_address = '"Wedding Site" <sender@example.com>'

    def __init__(self):
        self.sent = []
        self.fail_for = set()

    def send(self, message):
        if set(message.to) & self.fail_for:
            raise OSError("SMTP connection refused")
        self.sent.append(message)


class FakeCaptcha:
    def __init__(self, decision=HUMAN):
        self.decision = decision
        self.tokens = []

    def validate(self, token):
        self.tokens.append(token)
        return self.decision


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Stands in for requests.Session; returns a canned response or raises."""

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse(200, {"success": True})
        self.error = error
        self.calls = []

    def post(self, url, data=None, timeout=None):
        self.calls.append(dict(url=url, data=data, timeout=timeout))
        if self.error is not None:
            raise self.error
        return self.response


class FakeLambdaClient:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.invocations = []

    def invoke(self, **kwargs):
        self.invocations.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def lambda_payload(status_code, body, function_error=None):
    """A Lambda invoke response wrapping an API Gateway style result."""
    result = {"statusCode": status_code, "body": json.dumps(body)}
    response = {"StatusCode": 200, "Payload": io.BytesIO(json.dumps(result).encode("utf-8"))}
    if function_error:
        response["FunctionError"] = function_error
    return response


def client_error(code, operation="PutItem"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


def api_event(method="GET", path=None, query=None, body=None, request_id="api-req-1"):
    event = {
        "requestContext": {"requestId": request_id, "http": {"method": method}},
        "pathParameters": path,
        "queryStringParameters": query,
    }
    if body is not None:
        event["body"] = body if isinstance(body, str) else json.dumps(body)
    return event


def sns_event(*messages):
    return {
        "Records": [
            {"EventSource": "aws:sns", "Sns": {"Message": m if isinstance(m, str) else json.dumps(m)}}
            for m in messages
        ]
    }


def response_body(response):
    return json.loads(response["body"])


BASE_TIME = datetime(2025, 6, 14, 16, 30, tzinfo=timezone.utc)


def add_comments(store, photo_id, count, start=BASE_TIME):
    """Insert `count` comments one minute apart; returns them oldest first."""
    comments = []
    for n in range(count):
        created = start + timedelta(minutes=n)
        comment = Comment(
            photo_id=photo_id,
            comment_id=f"c_{n:04d}",
            created_at=created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            author_name=f"Guest {n}",
            content=f"Comment number {n}",
        )
        store.put_if_absent(comment.to_item())
        comments.append(comment)
    return comments


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def context():
    return SimpleNamespace(aws_request_id="lambda-req-1", function_name="test-fn")


@pytest.fixture
def settings():
    return Settings(
        comment_topic_arn="arn:aws:sns:eu-west-1:123:comments",
        email_topic_arn="arn:aws:sns:eu-west-1:123:emails",
        contact_recipients=["couple@example.com"],
        owner_emails=["owner@example.com"],
        recaptcha_secret_key="test-secret",
        public_site="https://site.example.com",
        api_domain="https://api.example.com",
    )


@pytest.fixture
def comment_store():
    return FakeStore("photoId", COMMENT_SORT_KEY, index_keys={"commentId-index": "commentId"})


@pytest.fixture
def subscription_store():
    return FakeStore("photoId", "email")


@pytest.fixture
def sns_client():
    return FakeSnsClient()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def captcha():
    return FakeCaptcha()


@pytest.fixture
def recaptcha_session():
    return FakeSession()


@pytest.fixture
def services(settings, comment_store, subscription_store, sns_client, mailer, captcha, recaptcha_session):
    return Services(
        settings=settings,
        comments=comment_store,
        subscriptions=subscription_store,
        publisher=SnsPublisher(client=sns_client),
        mailer=mailer,
        verifier=RecaptchaVerifier(
            settings.recaptcha_secret_key,
            settings.recaptcha_verify_url,
            session=recaptcha_session,
        ),
        captcha=captcha,
    )
