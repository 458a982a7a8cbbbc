import pytest

from conftest import add_comments, api_event, response_body, sns_event
from weddingsite import lambda_handler
from weddingsite.config import Settings


@pytest.fixture
def wired(monkeypatch, services):
    monkeypatch.setattr(lambda_handler, "services", lambda: services)
    return services


class TestEntryPoints:
    def test_list_comments(self, wired, context, comment_store):
        add_comments(comment_store, "p1", 2)
        response = lambda_handler.list_comments(api_event(path={"photoId": "p1"}), context)
        assert response["statusCode"] == 200
        assert response_body(response)["totalElements"] == 2

    def test_create_subscription(self, wired, context):
        event = api_event("POST", path={"photoId": "p1"}, body={"email": "guest@example.com"})
        assert lambda_handler.create_subscription(event, context)["statusCode"] == 201

    def test_delete_subscription(self, wired, context):
        event = api_event("DELETE", path={"photoId": "p1", "email": "guest@example.com"})
        assert lambda_handler.delete_subscription(event, context)["statusCode"] == 200

    def test_validate_captcha(self, wired, context):
        response = lambda_handler.validate_captcha(api_event("POST", body={"token": "tok"}), context)
        assert response["statusCode"] == 200

    def test_notification_manager_returns_nothing(self, wired, context):
        assert lambda_handler.notification_manager(sns_event(), context) is None

    def test_email_dispatcher(self, wired, context, mailer):
        message = {"type": "contact-us", "to": ["a@example.com"], "subject": "Hi", "text": "hello"}
        lambda_handler.email_dispatcher(sns_event(message), context)
        assert len(mailer.sent) == 1


class TestDescribe:
    def test_secrets_are_masked(self):
        described = lambda_handler._describe(Settings(smtp_pass="hunter2", recaptcha_secret_key="s3cret"))
        assert described["smtp_pass"] == "***"
        assert described["recaptcha_secret_key"] == "***"
        assert described["comments_table"] == "photo_comments"

    def test_unset_secrets_stay_empty(self):
        assert lambda_handler._describe(Settings())["smtp_pass"] is None
