"""
Record store used by the draft/submission cleanup.

The reconciler never talks to Supabase directly. It reads drafts and pending
submissions through a RecordStore and performs deletions inside
run_transaction(), which hands the callback a StoreTransaction with four
operations: get_draft, delete_draft, get_user, update_user_draft_ids.

Implementations:
- SupabaseRecordStore: production tables (drafts, submissions, users) via the
  admin client. PostgREST has no client-side transactions, so each step is
  executed as it is called; the existence re-check in get_draft is what
  guards against drafts deleted concurrently by their author.
- InMemoryRecordStore: dict-backed store for local runs and tests. A
  transaction works on the live data and is rolled back if the callback
  raises.
"""

from __future__ import annotations
import copy
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Supabase caps a single select at 1000 rows.
PAGE_SIZE = 1000

# Sort key for records missing a timestamp
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

DRAFT_COLUMNS = "id,author_id,post_type,title,content,draft_name,created_at,updated_at"
SUBMISSION_COLUMNS = "id,author_id,post_type,title,content,status,created_at"


class PostType(str, Enum):
    """Publication tracks a submission can target."""

    SM_EXPO = "SM_EXPO"
    SM_NOW = "SM_NOW"
    SM_PODS = "SM_PODS"

    def __str__(self) -> str:
        return self.value


class SubmissionStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    def __str__(self) -> str:
        return self.value


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a database timestamp into an aware UTC datetime.

    Accepts datetime objects and ISO-8601 strings (with or without a trailing
    "Z"). Naive values are taken to be UTC. Returns None for empty input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _enum_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value.value if isinstance(value, Enum) else str(value)


@dataclass(frozen=True)
class DraftRecord:
    """An author's unpublished, still-editable post."""
    id: str
    author_id: str
    post_type: Optional[str]
    title: Optional[str]
    content: Optional[str]
    updated_at: datetime
    draft_name: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "DraftRecord":
        return cls(
            id=str(row["id"]),
            author_id=str(row.get("author_id") or ""),
            post_type=_enum_value(row.get("post_type")),
            title=row.get("title"),
            content=row.get("content"),
            updated_at=parse_timestamp(row.get("updated_at")),
            draft_name=row.get("draft_name"),
            created_at=parse_timestamp(row.get("created_at")),
        )


@dataclass(frozen=True)
class SubmissionRecord:
    """A post sent for review; its content does not change after creation."""
    id: str
    author_id: str
    post_type: Optional[str]
    title: Optional[str]
    content: Optional[str]
    created_at: datetime
    status: str = SubmissionStatus.PENDING.value

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SubmissionRecord":
        return cls(
            id=str(row["id"]),
            author_id=str(row.get("author_id") or ""),
            post_type=_enum_value(row.get("post_type")),
            title=row.get("title"),
            content=row.get("content"),
            created_at=parse_timestamp(row.get("created_at")),
            status=_enum_value(row.get("status")) or SubmissionStatus.PENDING.value,
        )


class StoreTransaction(ABC):
    """Operations available inside RecordStore.run_transaction()."""

    @abstractmethod
    def get_draft(self, draft_id: str) -> Optional[DraftRecord]:
        ...

    @abstractmethod
    def delete_draft(self, draft_id: str) -> None:
        ...

    @abstractmethod
    def get_user(self, author_id: str) -> Optional[Dict[str, Any]]:
        """Return the user row (at least `id` and `draft_ids`) or None."""

    @abstractmethod
    def update_user_draft_ids(self, author_id: str, draft_ids: List[str]) -> None:
        ...


class RecordStore(ABC):
    """Read access to drafts/submissions plus transactional deletes."""

    @abstractmethod
    def find_drafts(self, author_id: Optional[str] = None) -> List[DraftRecord]:
        """All drafts (optionally for one author), most recently updated first."""

    @abstractmethod
    def find_submissions(
        self,
        status: SubmissionStatus | str = SubmissionStatus.PENDING,
        author_id: Optional[str] = None,
    ) -> List[SubmissionRecord]:
        """Submissions in `status` (optionally for one author), newest first."""

    @abstractmethod
    def run_transaction(self, fn: Callable[[StoreTransaction], T]) -> T:
        """Run fn with a transaction handle and return its result."""


# ============================================================================
# Supabase
# ============================================================================

class _SupabaseTransaction(StoreTransaction):
    def __init__(self, client) -> None:
        self._client = client

    def get_draft(self, draft_id: str) -> Optional[DraftRecord]:
        response = self._client.table("drafts") \
            .select(DRAFT_COLUMNS) \
            .eq("id", draft_id) \
            .limit(1) \
            .execute()
        if response.data:
            return DraftRecord.from_row(response.data[0])
        return None

    def delete_draft(self, draft_id: str) -> None:
        self._client.table("drafts").delete().eq("id", draft_id).execute()

    def get_user(self, author_id: str) -> Optional[Dict[str, Any]]:
        response = self._client.table("users") \
            .select("id,draft_ids") \
            .eq("id", author_id) \
            .limit(1) \
            .execute()
        return response.data[0] if response.data else None

    def update_user_draft_ids(self, author_id: str, draft_ids: List[str]) -> None:
        self._client.table("users").update({"draft_ids": list(draft_ids)}).eq("id", author_id).execute()


class SupabaseRecordStore(RecordStore):
    """RecordStore backed by the Supabase admin client (bypasses RLS)."""

    def __init__(self, client) -> None:
        if client is None:
            raise ValueError("Supabase admin client is not configured")
        self._client = client

    def _fetch_all(self, build_query: Callable[[], Any]) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        offset = 0
        while True:
            response = build_query().range(offset, offset + PAGE_SIZE - 1).execute()
            page = response.data or []
            rows.extend(page)
            if len(page) < PAGE_SIZE:
                return rows
            offset += PAGE_SIZE

    def find_drafts(self, author_id: Optional[str] = None) -> List[DraftRecord]:
        def build_query():
            query = self._client.table("drafts").select(DRAFT_COLUMNS)
            if author_id:
                query = query.eq("author_id", author_id)
            return query.order("updated_at", desc=True)

        return [DraftRecord.from_row(row) for row in self._fetch_all(build_query)]

    def find_submissions(
        self,
        status: SubmissionStatus | str = SubmissionStatus.PENDING,
        author_id: Optional[str] = None,
    ) -> List[SubmissionRecord]:
        def build_query():
            query = self._client.table("submissions") \
                .select(SUBMISSION_COLUMNS) \
                .eq("status", _enum_value(status))
            if author_id:
                query = query.eq("author_id", author_id)
            return query.order("created_at", desc=True)

        return [SubmissionRecord.from_row(row) for row in self._fetch_all(build_query)]

    def run_transaction(self, fn: Callable[[StoreTransaction], T]) -> T:
        return fn(_SupabaseTransaction(self._client))


# ============================================================================
# In-memory
# ============================================================================

class _InMemoryTransaction(StoreTransaction):
    def __init__(self, store: "InMemoryRecordStore") -> None:
        self._store = store

    def get_draft(self, draft_id: str) -> Optional[DraftRecord]:
        return self._store.drafts.get(draft_id)

    def delete_draft(self, draft_id: str) -> None:
        if self._store.drafts.pop(draft_id, None) is None:
            raise KeyError(f"Draft {draft_id} not found")

    def get_user(self, author_id: str) -> Optional[Dict[str, Any]]:
        user = self._store.users.get(author_id)
        return dict(user) if user is not None else None

    def update_user_draft_ids(self, author_id: str, draft_ids: List[str]) -> None:
        if author_id not in self._store.users:
            raise KeyError(f"User {author_id} not found")
        self._store.users[author_id]["draft_ids"] = list(draft_ids)


class InMemoryRecordStore(RecordStore):
    """
    Dict-backed store.

    users maps author id -> {"id": ..., "draft_ids": [...]}. Transactions are
    serialized with a lock and rolled back on any exception.
    """

    def __init__(
        self,
        drafts: Iterable[DraftRecord] = (),
        submissions: Iterable[SubmissionRecord] = (),
        users: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> None:
        self.drafts: Dict[str, DraftRecord] = {d.id: d for d in drafts}
        self.submissions: Dict[str, SubmissionRecord] = {s.id: s for s in submissions}
        self.users: Dict[str, Dict[str, Any]] = copy.deepcopy(users) if users else {}
        self._lock = threading.RLock()

    def find_drafts(self, author_id: Optional[str] = None) -> List[DraftRecord]:
        with self._lock:
            drafts = [d for d in self.drafts.values() if not author_id or d.author_id == author_id]
        return sorted(drafts, key=lambda d: d.updated_at or _EPOCH, reverse=True)

    def find_submissions(
        self,
        status: SubmissionStatus | str = SubmissionStatus.PENDING,
        author_id: Optional[str] = None,
    ) -> List[SubmissionRecord]:
        wanted = _enum_value(status)
        with self._lock:
            subs = [
                s for s in self.submissions.values()
                if s.status == wanted and (not author_id or s.author_id == author_id)
            ]
        return sorted(subs, key=lambda s: s.created_at or _EPOCH, reverse=True)

    def run_transaction(self, fn: Callable[[StoreTransaction], T]) -> T:
        with self._lock:
            drafts_before = dict(self.drafts)
            users_before = copy.deepcopy(self.users)
            try:
                return fn(_InMemoryTransaction(self))
            except Exception:
                self.drafts = drafts_before
                self.users = users_before
                raise
