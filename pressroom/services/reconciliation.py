"""
Duplicate draft cleanup.

When an author submits a draft, the submission is created from the draft's
content but the draft itself can be left behind. This module finds those
leftover drafts and (optionally) deletes them.

A draft and a pending submission are paired when:
- they share a match key (author, post type, normalized title and content),
- the submission was created no more than `window_minutes` after the draft's
  last update and no more than `early_tolerance_minutes` before it (clock
  skew between the app servers and the database).

Pairs are ranked by |delta| and assigned greedily so every draft and every
submission is used at most once. Greedy is not an optimal assignment; a
different strategy can replace assign_greedy() without touching candidate
generation.

Flow: snapshot -> find_candidates -> assign_greedy -> (apply_matches).
Nothing is kept between runs.
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Union

from pressroom.services.record_store import (
    DraftRecord,
    RecordStore,
    StoreTransaction,
    SubmissionRecord,
    SubmissionStatus,
)
from pressroom.utils.validation import normalize_text

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MINUTES = 120
EARLY_TOLERANCE_MINUTES = 1

STATUS_DELETED = "deleted"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"

Record = Union[DraftRecord, SubmissionRecord]


@dataclass(frozen=True)
class MatchCandidate:
    """A draft/submission pairing found during one cleanup run."""
    draft_id: str
    submission_id: str
    delta_minutes: float
    author_id: str
    title: Optional[str]
    post_type: Optional[str]
    draft_name: Optional[str] = None
    draft_updated_at: Optional[datetime] = None
    submission_created_at: Optional[datetime] = None

    def describe(self) -> str:
        """One-line summary for operator output."""
        def fmt(dt: Optional[datetime]) -> str:
            return dt.isoformat() if dt else "n/a"

        title = json.dumps(self.title or "", ensure_ascii=False)
        return " | ".join([
            f"author={self.author_id}",
            f"postType={self.post_type}",
            f"draftId={self.draft_id}",
            f"submissionId={self.submission_id}",
            f"deltaMinutes={self.delta_minutes:.2f}",
            f"draftUpdatedAt={fmt(self.draft_updated_at)}",
            f"submissionCreatedAt={fmt(self.submission_created_at)}",
            f"title={title}",
        ])


@dataclass(frozen=True)
class ApplyResult:
    draft_id: str
    status: str
    reason: Optional[str] = None


@dataclass
class ApplySummary:
    deleted: int = 0
    skipped: int = 0
    failed: int = 0
    results: List[ApplyResult] = field(default_factory=list)

    def record(self, result: ApplyResult) -> None:
        self.results.append(result)
        if result.status == STATUS_DELETED:
            self.deleted += 1
        elif result.status == STATUS_SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1


@dataclass
class CleanupReport:
    """Everything a cleanup run looked at and did."""
    drafts_scanned: int
    submissions_scanned: int
    matches: List[MatchCandidate]
    applied: Optional[ApplySummary] = None


# ============================================================================
# Matching
# ============================================================================

def build_match_key(record: Record) -> Optional[str]:
    """
    Composite "same content" key, or None when the record can't be matched
    (missing post type/title/content, or title/content blank after
    normalization).
    """
    if not record.post_type or not record.title or not record.content:
        return None

    title = normalize_text(record.title)
    content = normalize_text(record.content)
    if not title or not content:
        return None

    return "|".join([record.author_id, str(record.post_type), title, content])


def delta_minutes(draft_updated_at: datetime, submission_created_at: datetime) -> float:
    return (submission_created_at - draft_updated_at).total_seconds() / 60.0


def _validate_window(window_minutes: float, early_tolerance_minutes: float) -> None:
    if window_minutes is None or window_minutes <= 0:
        raise ValueError(f"window_minutes must be positive, got {window_minutes!r}")
    if early_tolerance_minutes is None or early_tolerance_minutes < 0:
        raise ValueError(
            f"early_tolerance_minutes must be zero or positive, got {early_tolerance_minutes!r}"
        )


def _validate_limit(limit: Optional[int]) -> None:
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0):
        raise ValueError(f"limit must be a positive integer, got {limit!r}")


def find_candidates(
    drafts: Iterable[DraftRecord],
    submissions: Iterable[SubmissionRecord],
    window_minutes: float = DEFAULT_WINDOW_MINUTES,
    early_tolerance_minutes: float = EARLY_TOLERANCE_MINUTES,
) -> List[MatchCandidate]:
    """
    Every same-key draft/submission pair whose time delta falls inside
    [-early_tolerance_minutes, window_minutes]. Unranked; one draft may
    appear with several submissions and vice versa.
    """
    _validate_window(window_minutes, early_tolerance_minutes)

    submissions_by_key: Dict[str, List[SubmissionRecord]] = {}
    for submission in submissions:
        key = build_match_key(submission)
        if key is None or submission.created_at is None:
            logger.debug("Submission %s has no match key; ignored", submission.id)
            continue
        submissions_by_key.setdefault(key, []).append(submission)

    candidates: List[MatchCandidate] = []
    for draft in drafts:
        key = build_match_key(draft)
        if key is None or draft.updated_at is None:
            logger.debug("Draft %s has no match key; ignored", draft.id)
            continue

        for submission in submissions_by_key.get(key, ()):
            delta = delta_minutes(draft.updated_at, submission.created_at)
            if -early_tolerance_minutes <= delta <= window_minutes:
                candidates.append(MatchCandidate(
                    draft_id=draft.id,
                    submission_id=submission.id,
                    delta_minutes=delta,
                    author_id=draft.author_id,
                    title=draft.title,
                    post_type=draft.post_type,
                    draft_name=draft.draft_name,
                    draft_updated_at=draft.updated_at,
                    submission_created_at=submission.created_at,
                ))

    return candidates


def assign_greedy(candidates: Sequence[MatchCandidate]) -> List[MatchCandidate]:
    """
    One-to-one assignment: walk candidates closest-in-time first and keep a
    pair only if neither its draft nor its submission is already taken.
    Ties keep their input order (sorted() is stable).
    """
    ranked = sorted(candidates, key=lambda c: abs(c.delta_minutes))

    used_drafts: Set[str] = set()
    used_submissions: Set[str] = set()
    matches: List[MatchCandidate] = []

    for candidate in ranked:
        if candidate.draft_id in used_drafts or candidate.submission_id in used_submissions:
            continue
        used_drafts.add(candidate.draft_id)
        used_submissions.add(candidate.submission_id)
        matches.append(candidate)

    return matches


def reconcile(
    drafts: Iterable[DraftRecord],
    submissions: Iterable[SubmissionRecord],
    window_minutes: float = DEFAULT_WINDOW_MINUTES,
    early_tolerance_minutes: float = EARLY_TOLERANCE_MINUTES,
    limit: Optional[int] = None,
) -> List[MatchCandidate]:
    """
    Compute the duplicate draft/submission pairs for a snapshot.

    Args:
        drafts: Draft snapshot
        submissions: Pending submission snapshot
        window_minutes: Latest a submission may be created after the draft's update
        early_tolerance_minutes: Earliest a submission may be created before it
        limit: Keep only the best `limit` pairs (applied after assignment)

    Returns:
        Accepted matches, closest in time first

    Raises:
        ValueError: on a non-positive window, negative tolerance or bad limit
    """
    _validate_limit(limit)

    matches = assign_greedy(find_candidates(drafts, submissions, window_minutes, early_tolerance_minutes))
    if limit is not None:
        matches = matches[:limit]
    return matches


# ============================================================================
# Deletion
# ============================================================================

def _delete_draft(tx: StoreTransaction, draft_id: str) -> ApplyResult:
    existing = tx.get_draft(draft_id)
    if existing is None:
        return ApplyResult(draft_id, STATUS_SKIPPED, "missing-draft")

    tx.delete_draft(existing.id)

    user = tx.get_user(existing.author_id)
    if user is not None:
        remaining = [i for i in (user.get("draft_ids") or []) if i != existing.id]
        tx.update_user_draft_ids(existing.author_id, remaining)

    return ApplyResult(draft_id, STATUS_DELETED)


def apply_matches(
    store: RecordStore,
    candidates: Iterable[MatchCandidate],
    should_stop: Optional[Callable[[], bool]] = None,
) -> ApplySummary:
    """
    Delete the draft of every match, one transaction per draft.

    A draft that is already gone is skipped. Any error is logged and counted
    as failed; the remaining matches are still processed. `should_stop` is
    checked before each match so a run can be cut short between
    transactions.
    """
    summary = ApplySummary()

    for candidate in candidates:
        if should_stop is not None and should_stop():
            logger.info("Cleanup stopped after %d match(es)", len(summary.results))
            break

        try:
            result = store.run_transaction(lambda tx: _delete_draft(tx, candidate.draft_id))
        except Exception as e:
            logger.exception("Failed to delete draft %s", candidate.draft_id)
            result = ApplyResult(candidate.draft_id, STATUS_FAILED, str(e))

        if result.status == STATUS_DELETED:
            logger.info("Deleted draft %s", candidate.draft_id)
        elif result.status == STATUS_SKIPPED:
            logger.info("Skipped draft %s (%s)", candidate.draft_id, result.reason)
        summary.record(result)

    return summary


def run_cleanup(
    store: RecordStore,
    apply: bool = False,
    window_minutes: float = DEFAULT_WINDOW_MINUTES,
    early_tolerance_minutes: float = EARLY_TOLERANCE_MINUTES,
    limit: Optional[int] = None,
    author_id: Optional[str] = None,
    should_stop: Optional[Callable[[], bool]] = None,
) -> CleanupReport:
    """Snapshot the store, compute matches and, when `apply` is set, delete."""
    _validate_window(window_minutes, early_tolerance_minutes)
    _validate_limit(limit)

    drafts = store.find_drafts(author_id=author_id)
    submissions = store.find_submissions(status=SubmissionStatus.PENDING, author_id=author_id)

    matches = reconcile(drafts, submissions, window_minutes, early_tolerance_minutes, limit)
    report = CleanupReport(
        drafts_scanned=len(drafts),
        submissions_scanned=len(submissions),
        matches=matches,
    )

    if apply and matches:
        report.applied = apply_matches(store, matches, should_stop=should_stop)

    return report
