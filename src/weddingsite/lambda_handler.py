"""AWS Lambda entry points for weddingsite.

Each function is deployed separately and points its handler setting at one
of the names below, e.g. ``weddingsite.lambda_handler.list_comments``.

Settings and clients are built on the first invocation and reused while
the execution environment stays warm. See weddingsite.config for the
environment variables each function reads.
"""

from functools import lru_cache

from weddingsite.captcha import handle_validate_captcha
from weddingsite.comments import handle_create_comment, handle_list_comments
from weddingsite.config import load_dotenv, load_settings
from weddingsite.contact import handle_contact
from weddingsite.log import configure_logging, get_logger
from weddingsite.notifications import handle_email_dispatch, handle_notification_event
from weddingsite.services import Services, build_services
from weddingsite.subscriptions import handle_create_subscription, handle_delete_subscription

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def services() -> Services:
    load_dotenv()
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_single_line)
    logger.debug("Configuration loaded: %s", _describe(settings))
    return build_services(settings)


def _describe(settings) -> dict:
    """Settings without secrets, for debug logging."""
    hidden = {"smtp_pass", "recaptcha_secret_key"}
    return {k: ("***" if k in hidden and v else v) for k, v in vars(settings).items()}


def contact(event, context):
    return handle_contact(event, context, services())


def list_comments(event, context):
    return handle_list_comments(event, context, services())


def create_comment(event, context):
    return handle_create_comment(event, context, services())


def create_subscription(event, context):
    return handle_create_subscription(event, context, services())


def delete_subscription(event, context):
    return handle_delete_subscription(event, context, services())


def validate_captcha(event, context):
    return handle_validate_captcha(event, context, services())


def notification_manager(event, context):
    handle_notification_event(event, context, services())


def email_dispatcher(event, context):
    handle_email_dispatch(event, context, services())
