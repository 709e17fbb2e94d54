"""
Comment Service Layer

Comments are stored flat (one row each, `parent_id` pointing at the comment
being replied to) and threaded on read. Thread shape:

- top-level comments newest first
- replies under each comment oldest first, to any depth
- a reply whose parent is gone is shown as a top-level comment
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..database import (
    get_comment_document_id,
    get_comment_rows,
    increment_comment_likes,
    insert_comment,
)
from ..exceptions import ValidationError
from ..utils.helpers import TTLCache, sanitize_html, to_date, to_int, to_str

logger = logging.getLogger(__name__)


@dataclass
class Comment:
    id: int
    document_id: str
    username: str
    content: str
    parent_id: Optional[int]
    created_at: Any
    likes: int = 0
    replies: List['Comment'] = field(default_factory=list)

    @classmethod
    def from_row(cls, row) -> 'Comment':
        parent = row['parent_id']
        return cls(
            id=to_int(row['id']),
            document_id=to_str(row['document_id']),
            username=to_str(row['username']),
            content=to_str(row['content']),
            parent_id=None if parent is None else to_int(parent),
            created_at=to_date(row['created_at']),
            likes=to_int(row['likes']),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'document_id': self.document_id,
            'username': self.username,
            'content': self.content,
            'parent_id': self.parent_id,
            'created_at': self.created_at.isoformat(),
            'likes': self.likes,
            'replies': [reply.to_dict() for reply in self.replies],
        }


def build_comment_tree(comments: Iterable[Comment]) -> List[Comment]:
    """Link flat comments into threads. See module docstring for ordering."""
    by_id = {c.id: c for c in comments}
    roots: List[Comment] = []

    # ascending so replies land in conversation order
    for comment in sorted(by_id.values(), key=lambda c: (c.created_at, c.id)):
        parent = by_id.get(comment.parent_id) if comment.parent_id else None
        if parent is not None and parent is not comment:
            parent.replies.append(comment)
        else:
            roots.append(comment)

    roots.sort(key=lambda c: (c.created_at, c.id), reverse=True)
    return roots


class CommentService:
    """Service class for comment threads and comment likes."""

    def __init__(self, cache_ttl: float = 180, max_comment_length: int = 1500,
                 max_username_length: int = 20):
        self.cache = TTLCache(cache_ttl)
        self.max_comment_length = max_comment_length
        self.max_username_length = max_username_length

    def _fetch_comments(self, document_id: str) -> List[Comment]:
        rows = get_comment_rows(document_id)
        return build_comment_tree(Comment.from_row(row) for row in rows)

    def get_comments(self, document_id: str) -> List[Comment]:
        return self.cache.get(document_id, lambda: self._fetch_comments(document_id))

    def add_comment(self, document_id: str, username: str, content: str,
                    parent_id: Optional[int] = None) -> Optional[int]:
        """
        Store a new comment.

        Args:
            document_id: Document being discussed
            username: Display name, at most `max_username_length` once trimmed
            content: Comment body, at most `max_comment_length` once trimmed
            parent_id: Comment being replied to, if any

        Returns:
            The new comment id, or None when username or content is blank.

        Raises:
            ValidationError: If a length limit is exceeded or `parent_id`
                is not a comment on `document_id`
        """
        if not username or not content:
            return None

        trimmed_username = username.strip()
        trimmed_content = content.strip()
        if not trimmed_username or not trimmed_content:
            return None

        if len(trimmed_username) > self.max_username_length:
            raise ValidationError(f"Username must be {self.max_username_length} characters or less")
        if len(trimmed_content) > self.max_comment_length:
            raise ValidationError(f"Comment must be {self.max_comment_length} characters or less")

        # Replies must hang off an existing comment on the same document
        if parent_id is not None and get_comment_document_id(parent_id) != document_id:
            raise ValidationError("Parent comment not found on this document")

        comment_id = insert_comment(
            document_id,
            sanitize_html(trimmed_username),
            sanitize_html(trimmed_content),
            parent_id,
        )
        self.cache.invalidate(document_id)
        logger.info(f"Comment {comment_id} added to {document_id} (parent={parent_id})")
        return comment_id

    def like_comment(self, comment_id: int, document_id: str) -> bool:
        updated = increment_comment_likes(comment_id)
        if updated:
            self.cache.invalidate(document_id)
        else:
            logger.warning(f"Like for unknown comment {comment_id} on {document_id}")
        return updated
