"""
Document manifest: the list of pre-converted documents the archive serves.

The manifest is a JSON array produced offline by the conversion tooling:

    [{"id": "EFTA00001", "title": "...", "pageCount": 3,
      "thumbnail": "https://...", "pages": ["https://.../page-0.webp", ...]}]

Manifest order is significant: it defines the previous/next navigation in
the viewer and the pool that related documents are drawn from.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .exceptions import DocumentNotFoundError, ManifestError

logger = logging.getLogger(__name__)

SORT_OPTIONS = ('name', 'pages', 'likes', 'comments')
RELATED_NEIGHBOUR_SPAN = 3
RELATED_LIMIT = 10
RELATED_STRIDE = 97


@dataclass
class Document:
    id: str
    title: str
    page_count: int
    thumbnail: str
    pages: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> 'Document':
        try:
            doc_id = str(raw['id'])
        except (KeyError, TypeError) as e:
            raise ManifestError("Manifest entry is missing an 'id'", details=repr(raw)) from e
        pages = raw.get('pages') or []
        if not isinstance(pages, list):
            raise ManifestError(f"Manifest entry {doc_id} has a non-list 'pages' value", details=repr(raw))
        try:
            page_count = int(raw.get('pageCount') or len(pages))
        except (TypeError, ValueError) as e:
            raise ManifestError(f"Manifest entry {doc_id} has an invalid 'pageCount'", details=repr(raw)) from e
        return cls(
            id=doc_id,
            title=str(raw.get('title') or doc_id),
            page_count=page_count,
            thumbnail=str(raw.get('thumbnail') or ''),
            pages=[str(p) for p in pages],
        )

    def to_summary(self) -> Dict[str, Any]:
        """Gallery card shape (no page URL list)."""
        return {
            'id': self.id,
            'title': self.title,
            'pageCount': self.page_count,
            'thumbnail': self.thumbnail,
        }


class Manifest:
    """Ordered, id-indexed collection of documents."""

    def __init__(self, documents: List[Document]):
        self.documents = list(documents)
        self._index = {doc.id: i for i, doc in enumerate(self.documents)}

    @classmethod
    def load(cls, path: str) -> 'Manifest':
        """
        Read the manifest JSON at `path`.

        A missing file is an empty archive (the conversion script has not
        been run yet). Unreadable or malformed content raises ManifestError.
        """
        if not os.path.exists(path):
            logger.warning(f"Manifest not found at {path}; serving an empty archive")
            return cls([])
        try:
            with open(path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ManifestError(f"Could not read manifest {path}", details=str(e)) from e
        if not isinstance(raw, list):
            raise ManifestError(f"Manifest {path} must contain a JSON array")
        manifest = cls([Document.from_dict(entry) for entry in raw])
        logger.info(f"Loaded manifest with {len(manifest)} documents from {path}")
        return manifest

    def __len__(self) -> int:
        return len(self.documents)

    def __contains__(self, document_id: str) -> bool:
        return document_id in self._index

    def get(self, document_id: str) -> Optional[Document]:
        idx = self._index.get(document_id)
        return self.documents[idx] if idx is not None else None

    def require(self, document_id: str) -> Document:
        doc = self.get(document_id)
        if doc is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return doc

    def index_of(self, document_id: str) -> int:
        self.require(document_id)
        return self._index[document_id]

    def neighbours(self, document_id: str) -> Tuple[Optional[Document], Optional[Document]]:
        """Previous and next documents in manifest order."""
        idx = self.index_of(document_id)
        prev_doc = self.documents[idx - 1] if idx > 0 else None
        next_doc = self.documents[idx + 1] if idx < len(self.documents) - 1 else None
        return prev_doc, next_doc

    def page_urls(self, document_id: str) -> List[str]:
        doc = self.require(document_id)
        if not doc.pages:
            raise ManifestError(
                f"Document {document_id} is missing page URLs in manifest. Run migration script."
            )
        return doc.pages

    def related(self, document_id: str, pool_size: int = 2000, limit: int = RELATED_LIMIT) -> List[Document]:
        """
        Up to `limit` related documents.

        First the manifest neighbours within ±3 positions, then a
        deterministic spread over the first `pool_size` documents seeded by
        the sum of the id's code points.
        """
        idx = self.index_of(document_id)
        results: List[Document] = []
        seen = {document_id}

        for offset in range(-RELATED_NEIGHBOUR_SPAN, RELATED_NEIGHBOUR_SPAN + 1):
            pos = idx + offset
            if offset == 0 or pos < 0 or pos >= len(self.documents):
                continue
            neighbour = self.documents[pos]
            if neighbour.id in seen:
                continue
            seen.add(neighbour.id)
            results.append(neighbour)

        seed = sum(ord(ch) for ch in document_id)
        batch_size = min(pool_size, len(self.documents))
        i = 0
        while len(results) < limit and i < batch_size:
            candidate = self.documents[(seed + i * RELATED_STRIDE) % batch_size]
            i += 1
            if candidate.id in seen:
                continue
            seen.add(candidate.id)
            results.append(candidate)

        return results[:limit]

    def search(self, query: str = '', sort_by: str = 'name',
               stats: Optional[Dict[str, Dict[str, int]]] = None) -> List[Document]:
        """
        Filter by case-insensitive substring of title or id, then sort.

        `likes` and `comments` sorts read from `stats`
        ({document_id: {'likes': n, 'comments': n}}); documents absent from
        it count as zero.
        """
        if sort_by not in SORT_OPTIONS:
            raise ValueError(f"Unknown sort option: {sort_by}")
        stats = stats or {}
        needle = (query or '').lower()
        docs = [d for d in self.documents if needle in d.title.lower() or needle in d.id.lower()]

        if sort_by == 'name':
            docs.sort(key=lambda d: (d.title.lower(), d.title))
        elif sort_by == 'pages':
            docs.sort(key=lambda d: d.page_count, reverse=True)
        else:
            docs.sort(key=lambda d: stats.get(d.id, {}).get(sort_by, 0), reverse=True)
        return docs
