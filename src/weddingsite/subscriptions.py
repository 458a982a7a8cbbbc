"""Comment-notification subscriptions, one row per (photoId, email).

Subscribing is a conditional write, so a pair exists at most once.
Unsubscribing is set removal: removing an absent pair is a no-op that still
succeeds, and the response says whether anything was there.
"""

import logging
from typing import List
from urllib.parse import urlencode

from weddingsite.captcha import check_captcha
from weddingsite.log import RequestLogger
from weddingsite.models import Subscription
from weddingsite.validation import parse_create_subscription, parse_delete_subscription
from weddingsite.web import (
    INTERNAL_SERVICE_ERROR,
    VALIDATION_FAILED,
    CorrelationIds,
    ValidationError,
    failure,
    http_method,
    path_param,
    redirect,
    success,
)

logger = logging.getLogger(__name__)


def subscribe(store, photo_id: str, email: str) -> bool:
    """Store a subscription. Returns False if the pair already existed."""
    subscription = Subscription(photo_id=photo_id, email=email.lower())
    logger.info("Storing subscription for photo %s", photo_id)
    return store.put_if_absent(subscription.to_item())


def unsubscribe(store, photo_id: str, email: str) -> bool:
    """Remove a subscription. Returns whether it existed."""
    old = store.delete_returning_old({"photoId": photo_id, "email": email.lower()})
    return old is not None


def list_subscriptions(store, photo_id: str) -> List[Subscription]:
    """All subscribers of a photo, across every page of the partition."""
    subscriptions = []
    key = None
    while True:
        result = store.query(photo_id, continuation_key=key, projection=("photoId", "email"))
        subscriptions.extend(Subscription.from_item(item) for item in result.items)
        key = result.continuation_key
        if not key:
            return subscriptions


def unsubscribe_page(public_site: str, **params) -> str:
    return f"{public_site}/unsubscribe?{urlencode(params)}"


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def handle_create_subscription(event: dict, context, services) -> dict:
    """POST /photos/{photoId}/subscriptions"""
    correlation = CorrelationIds.from_invocation(event, context)
    log = RequestLogger(logger, correlation)
    log.info("Received request to create subscription (photo=%s)", path_param(event, "photoId"))

    try:
        request = parse_create_subscription(event)
    except ValidationError as e:
        log.error("Request validation failed: %s", e.message)
        return failure(400, VALIDATION_FAILED, e.message, correlation)

    try:
        if services.settings.use_recaptcha:
            rejection = check_captcha(services.captcha, request.recaptcha_token, correlation)
            if rejection is not None:
                log.warning("reCAPTCHA check rejected subscription (status=%s)", rejection["statusCode"])
                return rejection

        created = subscribe(services.subscriptions, request.photo_id, request.email)
    except Exception:
        log.exception("Error creating subscription")
        return failure(500, INTERNAL_SERVICE_ERROR, "An unexpected error occurred", correlation)

    if not created:
        log.info("Subscription already present for photo %s", request.photo_id)
        return success(
            200,
            {"photoId": request.photo_id, "email": request.email, "subscribed": True, "created": False},
            correlation,
        )

    log.info("Subscription creation completed successfully")
    return success(201, {}, correlation)


def handle_delete_subscription(event: dict, context, services) -> dict:
    """DELETE /photos/{photoId}/subscriptions/{email}

    The same route answers GET for the unsubscribe link in notification
    emails; a browser follows it, so that path always redirects to the site.
    """
    correlation = CorrelationIds.from_invocation(event, context)
    log = RequestLogger(logger, correlation)
    method = http_method(event)
    public_site = services.settings.public_site
    log.info("Received unsubscribe request (method=%s, photo=%s)", method, path_param(event, "photoId"))

    try:
        request = parse_delete_subscription(event)
    except ValidationError as e:
        log.error("Request validation failed: %s", e.message)
        if method == "GET":
            return redirect(unsubscribe_page(public_site, status="error", code=VALIDATION_FAILED))
        return failure(400, VALIDATION_FAILED, e.message, correlation)

    try:
        existed = unsubscribe(services.subscriptions, request.photo_id, request.email)
    except Exception:
        log.exception("Error unsubscribing")
        if method == "GET":
            return redirect(unsubscribe_page(public_site, status="error", code=INTERNAL_SERVICE_ERROR))
        return failure(500, INTERNAL_SERVICE_ERROR, "An unexpected error occurred", correlation)

    log.info("Unsubscribed from photo %s (existed=%s)", request.photo_id, existed)

    if method == "GET":
        return redirect(unsubscribe_page(public_site, status="ok", photo=request.photo_id, email=request.email))

    return success(
        200,
        {"photoId": request.photo_id, "email": request.email, "unsubscribed": True, "existed": existed},
        correlation,
    )
