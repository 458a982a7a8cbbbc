"""Request parsing and field validation.

Each parse_* function turns a raw API Gateway event into a typed request or
raises ValidationError; nothing downstream touches the raw event.
"""

import re
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import unquote

from weddingsite.config import Settings
from weddingsite.web import ValidationError, json_body, path_param, query_params

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

ASC = "asc"
DESC = "desc"
MAX_CURSOR_LIMIT = 1000


# ---------------------------------------------------------------------------
# Field validators (return the cleaned value, or None if invalid)
# ---------------------------------------------------------------------------


def validate_email(value) -> Optional[str]:
    if not isinstance(value, str):
        return None
    email = value.strip().lower()
    if not EMAIL_RE.match(email):
        return None
    return email


def validate_author_name(value, pattern: re.Pattern) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not pattern.match(trimmed):
        return None
    return trimmed


def validate_content(value, max_length: int) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed or len(trimmed) > max_length:
        return None
    return trimmed


def parse_order(raw: Optional[str], default: str = DESC) -> str:
    value = (raw or default or DESC).lower()
    return ASC if value == ASC else DESC


def _positive_int(raw) -> Optional[int]:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def clamp_size(raw, default: int, maximum: int) -> int:
    """Non-numeric or non-positive sizes fall back to the default; large ones are capped."""
    value = _positive_int(raw) if raw not in (None, "") else None
    if value is None:
        value = default
    return max(1, min(value, maximum))


# ---------------------------------------------------------------------------
# Typed requests
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CursorPageRequest:
    photo_id: str
    limit: int
    order: str
    cursor: Optional[str] = None


@dataclass(frozen=True)
class IndexPageRequest:
    photo_id: str
    page_index: int
    page_size: int
    order: str


PageRequest = Union[CursorPageRequest, IndexPageRequest]


@dataclass(frozen=True)
class CreateCommentRequest:
    photo_id: str
    author_name: str
    content: str
    recaptcha_token: Optional[str] = None


@dataclass(frozen=True)
class SubscriptionRequest:
    photo_id: str
    email: str
    recaptcha_token: Optional[str] = None


@dataclass(frozen=True)
class ContactRequest:
    name: str
    surname: str
    message: str
    email: Optional[str] = None
    phone: Optional[str] = None
    recaptcha_token: Optional[str] = None


def _require_photo_id(event: dict) -> str:
    photo_id = path_param(event, "photoId")
    if not photo_id:
        raise ValidationError("Missing photoId in path parameters")
    return photo_id


def _token(body: dict) -> Optional[str]:
    token = body.get("recaptchaToken")
    return token if isinstance(token, str) and token else None


def parse_page_request(event: dict, settings: Settings) -> PageRequest:
    """Page-index addressing when ?pageIndex is present, cursor addressing otherwise."""
    photo_id = _require_photo_id(event)
    qs = query_params(event)
    order = parse_order(qs.get("order"), settings.default_order)

    if qs.get("pageIndex") not in (None, ""):
        page_index = _positive_int(qs["pageIndex"])
        if page_index is None:
            raise ValidationError("pageIndex must be a positive integer")
        page_size = clamp_size(qs.get("pageSize"), settings.default_page_size, settings.max_page_size)
        return IndexPageRequest(photo_id=photo_id, page_index=page_index, page_size=page_size, order=order)

    limit = clamp_size(qs.get("limit"), settings.default_page_size, MAX_CURSOR_LIMIT)
    cursor = qs.get("cursor") or None
    return CursorPageRequest(photo_id=photo_id, limit=limit, order=order, cursor=cursor)


def parse_create_comment(event: dict, settings: Settings) -> CreateCommentRequest:
    photo_id = _require_photo_id(event)
    body = json_body(event)

    author_name = validate_author_name(body.get("authorName"), re.compile(settings.author_name_regex))
    if not author_name:
        raise ValidationError("Invalid authorName")

    content = validate_content(body.get("content"), settings.content_max_length)
    if not content:
        raise ValidationError("Invalid content")

    return CreateCommentRequest(
        photo_id=photo_id,
        author_name=author_name,
        content=content,
        recaptcha_token=_token(body),
    )


def parse_create_subscription(event: dict) -> SubscriptionRequest:
    photo_id = _require_photo_id(event)
    body = json_body(event)
    email = validate_email(body.get("email"))
    if not email:
        raise ValidationError("Invalid email format")
    return SubscriptionRequest(photo_id=photo_id, email=email, recaptcha_token=_token(body))


def parse_delete_subscription(event: dict) -> SubscriptionRequest:
    photo_id = _require_photo_id(event)
    raw_email = path_param(event, "email")
    if not raw_email:
        raise ValidationError("Missing email in path parameters")
    email = unquote(raw_email).strip().lower()
    if not email:
        raise ValidationError("Missing email in path parameters")
    return SubscriptionRequest(photo_id=photo_id, email=email)


def parse_contact(event: dict) -> ContactRequest:
    body = json_body(event)

    def text(name: str) -> Optional[str]:
        value = body.get(name)
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    name, surname, message = text("name"), text("surname"), text("message")
    if not name:
        raise ValidationError("Missing name.")
    if not surname:
        raise ValidationError("Missing surname.")
    if not message:
        raise ValidationError("Missing message.")

    email, phone = text("email"), text("phone")
    if not email and not phone:
        raise ValidationError("Please provide either email or phone number.")
    if email:
        email = validate_email(email)
        if not email:
            raise ValidationError("Invalid email format.")

    return ContactRequest(
        name=name,
        surname=surname,
        message=message,
        email=email,
        phone=phone,
        recaptcha_token=_token(body),
    )
