"""Photo comments: paginated listing and creation.

Listing supports two addressing modes behind one PageFetcher interface:

- CursorPageFetcher: one bounded query starting at the decoded cursor. Cost
  is constant per page; this is the mode clients should use.
- PageIndexFetcher: legacy page-number addressing. Every request walks the
  partition from the start, one query per page up to the requested one, so
  cost grows with pageIndex and page boundaries move when comments are added.

Both report totalElements from a COUNT scan of the whole partition.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ulid import ULID

from weddingsite.captcha import check_captcha
from weddingsite.cursor import decode_cursor, encode_cursor
from weddingsite.log import RequestLogger
from weddingsite.models import COMMENT_CREATED, Comment, CommentEvent, Page
from weddingsite.utils import to_iso_utc, utc_now
from weddingsite.validation import (
    ASC,
    CursorPageRequest,
    IndexPageRequest,
    PageRequest,
    parse_create_comment,
    parse_page_request,
)
from weddingsite.web import (
    INTERNAL_SERVICE_ERROR,
    VALIDATION_FAILED,
    CorrelationIds,
    ValidationError,
    failure,
    path_param,
    query_params,
    success,
)

logger = logging.getLogger(__name__)

COMMENT_FIELDS = ("photoId", "commentId", "createdAt", "authorName", "content")


class DuplicateCommentError(RuntimeError):
    """The conditional write found a comment with the same sort key."""


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


@dataclass
class Window:
    items: List[Dict] = field(default_factory=list)
    continuation_key: Optional[Dict] = None


def total_pages(total_elements: int, page_size: int) -> int:
    if total_elements <= 0 or page_size <= 0:
        return 0
    return math.ceil(total_elements / page_size)


def count_comments(store, photo_id: str) -> int:
    """Count every comment of a photo, following COUNT pagination to the end."""
    total = 0
    key = None
    while True:
        result = store.query(photo_id, continuation_key=key, count_only=True)
        total += result.count
        key = result.continuation_key
        if not key:
            return total


class PageFetcher:
    """Fetches one page of a photo's comments."""

    page_size: int

    def fetch(self, store, photo_id: str, scan_forward: bool) -> Window:
        raise NotImplementedError

    def build_page(self, window: Window, total_elements: int) -> Page:
        raise NotImplementedError


def _is_start_key_for(store, key: Dict, photo_id: str) -> bool:
    """A usable start key is exactly this photo's primary key with a string sort key."""
    return (
        set(key) == {store.partition_key, store.sort_key}
        and key[store.partition_key] == photo_id
        and isinstance(key[store.sort_key], str)
    )


class CursorPageFetcher(PageFetcher):
    def __init__(self, limit: int, cursor: Optional[str] = None):
        self.page_size = limit
        self.cursor = cursor

    def fetch(self, store, photo_id: str, scan_forward: bool) -> Window:
        # An unreadable cursor decodes to None and restarts from the top
        start_key = decode_cursor(self.cursor)
        if start_key is not None and not _is_start_key_for(store, start_key, photo_id):
            logger.warning("Ignoring cursor that does not belong to photo %s", photo_id)
            start_key = None
        result = store.query(
            photo_id,
            continuation_key=start_key,
            limit=self.page_size,
            scan_forward=scan_forward,
        )
        return Window(items=result.items, continuation_key=result.continuation_key)

    def build_page(self, window: Window, total_elements: int) -> Page:
        return Page(
            elements=[Comment.from_item(item) for item in window.items],
            has_next=bool(window.continuation_key),
            total_elements=total_elements,
            total_pages_count=total_pages(total_elements, self.page_size),
            cursor=encode_cursor(window.continuation_key),
        )


class PageIndexFetcher(PageFetcher):
    def __init__(self, page_index: int, page_size: int):
        if page_index < 1:
            raise ValueError(f"page_index must be >= 1, got {page_index}")
        self.page_index = page_index
        self.page_size = page_size

    def fetch(self, store, photo_id: str, scan_forward: bool) -> Window:
        key = None
        for step in range(1, self.page_index + 1):
            result = store.query(
                photo_id,
                continuation_key=key,
                limit=self.page_size,
                scan_forward=scan_forward,
            )
            if step == self.page_index:
                return Window(items=result.items, continuation_key=result.continuation_key)
            if not result.continuation_key or len(result.items) < self.page_size:
                # Partition ran out before the requested page
                return Window()
            key = result.continuation_key
        return Window()

    def build_page(self, window: Window, total_elements: int) -> Page:
        has_next = bool(window.continuation_key) and self.page_index * self.page_size < total_elements
        return Page(
            elements=[Comment.from_item(item) for item in window.items],
            has_next=has_next,
            total_elements=total_elements,
            total_pages_count=total_pages(total_elements, self.page_size),
            page_index=self.page_index,
            page_size=self.page_size,
        )


def fetcher_for(request: PageRequest) -> PageFetcher:
    if isinstance(request, IndexPageRequest):
        return PageIndexFetcher(request.page_index, request.page_size)
    if isinstance(request, CursorPageRequest):
        return CursorPageFetcher(request.limit, request.cursor)
    raise TypeError(f"Unsupported page request: {type(request).__name__}")


def list_comments(store, request: PageRequest) -> Page:
    """Produce one page of comments for request.photo_id, plus totals."""
    fetcher = fetcher_for(request)
    window = fetcher.fetch(store, request.photo_id, scan_forward=request.order == ASC)
    total_elements = count_comments(store, request.photo_id)
    return fetcher.build_page(window, total_elements)


# ---------------------------------------------------------------------------
# Creation and lookup
# ---------------------------------------------------------------------------


def new_comment_id(moment: Optional[datetime] = None) -> str:
    """A "c_" prefixed ULID, so ids sort by creation time."""
    ulid = ULID() if moment is None else ULID.from_datetime(moment)
    return f"c_{ulid}"


def create_comment(
    store,
    photo_id: str,
    author_name: str,
    content: str,
    clock: Callable = utc_now,
    id_factory: Callable[[], str] = new_comment_id,
) -> Comment:
    """Store a new comment.

    Raises:
        DuplicateCommentError: if another comment already holds the same
            (photoId, createdAt#commentId) key.
    """
    comment = Comment(
        photo_id=photo_id,
        comment_id=id_factory(),
        created_at=to_iso_utc(clock()),
        author_name=author_name,
        content=content,
    )
    logger.info("Storing comment %s for photo %s", comment.comment_id, photo_id)
    if not store.put_if_absent(comment.to_item()):
        raise DuplicateCommentError(f"Comment key {comment.sort_key} already exists for photo {photo_id}")
    return comment


def get_comment(store, comment_id: str, index_name: str) -> Optional[Comment]:
    """Look a comment up by id through the commentId secondary index."""
    result = store.query(comment_id, index_name=index_name, limit=1, projection=COMMENT_FIELDS)
    if not result.items:
        return None
    return Comment.from_item(result.items[0])


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def handle_list_comments(event: dict, context, services) -> dict:
    """GET /photos/{photoId}/comments"""
    correlation = CorrelationIds.from_invocation(event, context)
    log = RequestLogger(logger, correlation)
    log.info(
        "Received request to list comments (path=%s, query=%s)",
        event.get("pathParameters"), query_params(event),
    )

    try:
        request = parse_page_request(event, services.settings)
    except ValidationError as e:
        log.error("Request validation failed: %s", e.message)
        return failure(400, VALIDATION_FAILED, e.message, correlation)

    try:
        page = list_comments(services.comments, request)
    except Exception:
        log.exception("Error listing comments for photo %s", request.photo_id)
        return failure(500, INTERNAL_SERVICE_ERROR, "An unexpected error occurred", correlation)

    log.info(
        "List comments completed (photo=%s, mode=%s, order=%s, returned=%d, total=%d, hasNext=%s)",
        request.photo_id, type(request).__name__, request.order,
        len(page.elements), page.total_elements, page.has_next,
    )
    return success(200, page.to_dict(), correlation)


def handle_create_comment(event: dict, context, services) -> dict:
    """POST /photos/{photoId}/comments"""
    correlation = CorrelationIds.from_invocation(event, context)
    log = RequestLogger(logger, correlation)
    log.info("Received request to create comment (photo=%s)", path_param(event, "photoId"))

    settings = services.settings
    try:
        request = parse_create_comment(event, settings)
    except ValidationError as e:
        log.error("Request validation failed: %s", e.message)
        return failure(400, VALIDATION_FAILED, e.message, correlation)

    try:
        if settings.use_recaptcha:
            rejection = check_captcha(services.captcha, request.recaptcha_token, correlation)
            if rejection is not None:
                log.warning("reCAPTCHA check rejected comment (status=%s)", rejection["statusCode"])
                return rejection

        comment = create_comment(
            services.comments,
            request.photo_id,
            request.author_name,
            request.content,
            clock=services.clock,
            id_factory=services.id_factory,
        )
    except Exception:
        log.exception("Error creating comment")
        return failure(500, INTERNAL_SERVICE_ERROR, "An unexpected error occurred", correlation)

    log.info("Comment %s created for photo %s", comment.comment_id, comment.photo_id)

    event_message = CommentEvent(COMMENT_CREATED, comment.photo_id, comment.comment_id).to_message()
    published = services.publisher.publish_best_effort(settings.comment_topic_arn, event_message)
    if not published.published:
        log.warning("Comment %s stored but notification not published: %s", comment.comment_id, published.error)

    return success(201, comment.to_dict(), correlation)
