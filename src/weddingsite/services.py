"""Collaborators shared by the handlers, built once per process."""

from dataclasses import dataclass
from typing import Any, Callable, Optional

import boto3

from weddingsite.captcha import LambdaCaptchaValidator, LocalCaptchaValidator, RecaptchaVerifier
from weddingsite.comments import new_comment_id
from weddingsite.config import Settings
from weddingsite.mailer import SmtpMailer
from weddingsite.messaging import SnsPublisher
from weddingsite.models import COMMENT_SORT_KEY
from weddingsite.store import DynamoStore
from weddingsite.utils import utc_now


@dataclass
class Services:
    settings: Settings
    comments: Any
    subscriptions: Any
    publisher: Any
    mailer: Any
    verifier: Any
    captcha: Optional[Any] = None
    clock: Callable = utc_now
    id_factory: Callable[[], str] = new_comment_id


def build_services(settings: Settings) -> Services:
    """Wire the AWS, SMTP and reCAPTCHA clients from settings.

    CAPTCHA tokens are checked through the captcha-validator function when
    CAPTCHA_VALIDATOR_FUNCTION_NAME is set, and in-process otherwise.
    """
    dynamodb = boto3.resource("dynamodb", region_name=settings.aws_region)
    comments = DynamoStore(
        settings.comments_table,
        partition_key="photoId",
        sort_key=COMMENT_SORT_KEY,
        resource=dynamodb,
        index_keys={settings.comments_index: "commentId"},
    )
    subscriptions = DynamoStore(
        settings.subscriptions_table,
        partition_key="photoId",
        sort_key="email",
        resource=dynamodb,
    )

    verifier = RecaptchaVerifier(
        settings.recaptcha_secret_key,
        settings.recaptcha_verify_url,
        timeout=settings.recaptcha_timeout,
    )
    if settings.captcha_validator_function_name:
        captcha = LambdaCaptchaValidator(settings.captcha_validator_function_name, region=settings.aws_region)
    else:
        captcha = LocalCaptchaValidator(verifier)

    mailer = SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        user=settings.smtp_user,
        password=settings.smtp_pass,
        secure=settings.smtp_secure,
        from_name=settings.mail_from_name,
    )

    return Services(
        settings=settings,
        comments=comments,
        subscriptions=subscriptions,
        publisher=SnsPublisher(region=settings.aws_region),
        mailer=mailer,
        verifier=verifier,
        captcha=captcha,
    )
