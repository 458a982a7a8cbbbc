"""Entities, messages and page shapes shared by the functions."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

COMMENT_SORT_KEY = "createdAt#commentId"
COMMENT_CREATED = "comment-created"

CONTACT_US = "contact-us"
COMMENT_NOTIFICATION = "comment-notification"


@dataclass(frozen=True)
class Comment:
    photo_id: str
    comment_id: str
    created_at: str
    author_name: str
    content: str

    @property
    def sort_key(self) -> str:
        return f"{self.created_at}#{self.comment_id}"

    def to_item(self) -> Dict[str, str]:
        """DynamoDB item, including the composite sort key attribute."""
        return {
            "photoId": self.photo_id,
            COMMENT_SORT_KEY: self.sort_key,
            "commentId": self.comment_id,
            "createdAt": self.created_at,
            "authorName": self.author_name,
            "content": self.content,
        }

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "Comment":
        return cls(
            photo_id=str(item["photoId"]),
            comment_id=str(item["commentId"]),
            created_at=str(item["createdAt"]),
            author_name=str(item["authorName"]),
            content=str(item["content"]),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "photoId": self.photo_id,
            "commentId": self.comment_id,
            "createdAt": self.created_at,
            "authorName": self.author_name,
            "content": self.content,
        }


@dataclass(frozen=True)
class Subscription:
    photo_id: str
    email: str

    def to_item(self) -> Dict[str, str]:
        return {"photoId": self.photo_id, "email": self.email}

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "Subscription":
        return cls(photo_id=str(item["photoId"]), email=str(item["email"]))


@dataclass(frozen=True)
class CommentEvent:
    type: str
    photo_id: str
    comment_id: str

    def to_message(self) -> Dict[str, str]:
        return {"type": self.type, "photoId": self.photo_id, "commentId": self.comment_id}

    @classmethod
    def from_message(cls, message: Dict[str, Any]) -> "CommentEvent":
        try:
            return cls(
                type=str(message["type"]),
                photo_id=str(message.get("photoId", "")),
                comment_id=str(message.get("commentId", "")),
            )
        except (KeyError, AttributeError, TypeError) as e:
            raise ValueError(f"Malformed comment event: {message!r}") from e


@dataclass(frozen=True)
class EmailNotificationMessage:
    type: str
    to: List[str]
    subject: str
    text: Optional[str] = None
    html: Optional[str] = None

    def to_message(self) -> Dict[str, Any]:
        message = {"type": self.type, "to": list(self.to), "subject": self.subject}
        if self.text is not None:
            message["text"] = self.text
        if self.html is not None:
            message["html"] = self.html
        return message

    @classmethod
    def from_message(cls, message: Dict[str, Any]) -> "EmailNotificationMessage":
        to = message.get("to")
        if isinstance(to, str):
            to = [to]
        if not to or not message.get("subject"):
            raise ValueError("Email message requires `to` and `subject`")
        return cls(
            type=str(message.get("type", "")),
            to=[str(address) for address in to],
            subject=str(message["subject"]),
            text=message.get("text"),
            html=message.get("html"),
        )


@dataclass
class Page:
    """One page of a listing plus the totals the UI shows."""

    elements: List[Comment]
    has_next: bool
    total_elements: int
    total_pages_count: int
    cursor: Optional[str] = None
    page_index: Optional[int] = None
    page_size: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "elements": [c.to_dict() for c in self.elements],
            "hasNext": self.has_next,
            "totalElements": self.total_elements,
            "totalPagesCount": self.total_pages_count,
        }
        if self.cursor is not None:
            body["cursor"] = self.cursor
        if self.page_index is not None:
            body["pageIndex"] = self.page_index
        if self.page_size is not None:
            body["pageSize"] = self.page_size
        return body
