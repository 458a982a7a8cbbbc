"""Contact form: validates the message and queues it for the email dispatcher."""

import logging

from weddingsite import emails
from weddingsite.captcha import check_captcha
from weddingsite.log import RequestLogger
from weddingsite.models import CONTACT_US, EmailNotificationMessage
from weddingsite.validation import parse_contact
from weddingsite.web import (
    BAD_CAPTCHA,
    INTERNAL_SERVICE_ERROR,
    VALIDATION_FAILED,
    CorrelationIds,
    ValidationError,
    failure,
    success,
)

logger = logging.getLogger(__name__)

MESSAGE_SOURCE = "wedding-contact-us"


def build_contact_message(request, recipients) -> EmailNotificationMessage:
    details = dict(
        name=request.name,
        surname=request.surname,
        message=request.message,
        email=request.email,
        phone=request.phone,
    )
    return EmailNotificationMessage(
        type=CONTACT_US,
        to=list(recipients),
        subject=emails.contact_subject(request.name),
        text=emails.contact_text(**details),
        html=emails.contact_html(**details),
    )


def handle_contact(event: dict, context, services) -> dict:
    """POST /contact"""
    correlation = CorrelationIds.from_invocation(event, context)
    log = RequestLogger(logger, correlation)
    log.info("Received contact form submission")

    try:
        request = parse_contact(event)
    except ValidationError as e:
        log.warning("Contact form validation failed: %s", e.message)
        return failure(400, VALIDATION_FAILED, e.message, correlation)

    settings = services.settings
    try:
        if settings.use_recaptcha:
            rejection = check_captcha(
                services.captcha,
                request.recaptcha_token,
                correlation,
                missing_code=BAD_CAPTCHA,
                failed_code=BAD_CAPTCHA,
            )
            if rejection is not None:
                log.warning("reCAPTCHA check rejected contact form (status=%s)", rejection["statusCode"])
                return rejection

        if not settings.email_topic_arn:
            raise ValueError("Required environment variable EMAIL_SNS_TOPIC_ARN not set")
        if not settings.contact_recipients:
            raise ValueError("Required environment variable TO_EMAIL not set")

        message = build_contact_message(request, settings.contact_recipients)
        services.publisher.publish(
            settings.email_topic_arn,
            message.to_message(),
            attributes={"source": MESSAGE_SOURCE},
        )
    except Exception:
        log.exception("Failed to send contact message")
        return failure(500, INTERNAL_SERVICE_ERROR, "Failed to send message", correlation)

    log.info("Contact message published on %s", settings.email_topic_arn)
    return success(200, "Message sent successfully!", correlation)
