"""
Rule-based comment moderation.

Checks a comment and returns a ModerationVerdict. If blocked, `reason` is a
short message suitable for display next to the comment box. Rules run in a
fixed order and the first failing rule decides the verdict:

1. length-low       (shorter than min_length)
2. length-high      (longer than max_length)
3. blocked words    (whole-word, case-insensitive; every hit is reported)
4. blocked patterns (repeated characters, all caps, punctuation runs,
                     email addresses, phone numbers)

The word list and pattern table are plain constructor arguments so a longer
or externally loaded list can replace the defaults without touching the
evaluation code. Engines are immutable once built and safe to share between
request threads.

Callers are expected to run sanitize() first; moderate() checks the text
exactly as given.
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Pattern, Sequence, Tuple

from pressroom.utils.validation import sanitize_comment

logger = logging.getLogger(__name__)

COMMENT_MIN_LENGTH = 1
COMMENT_MAX_LENGTH = 1000

REASON_TOO_SHORT = "Comment is too short"
REASON_INAPPROPRIATE = "Comment contains inappropriate language"
REASON_PROHIBITED = "Content contains prohibited patterns"

# Profanity, slurs, and the punctuation/leetspeak spellings people use to
# get around a plain list. Order matters: flagged words are reported in this
# order.
DEFAULT_BLOCKED_WORDS: Tuple[str, ...] = (
    # Profanity
    "fuck",
    "shit",
    "ass",
    "bitch",
    "damn",
    "hell",
    "crap",
    "dick",
    "cock",
    "pussy",
    "bastard",
    "slut",
    "whore",
    "fag",
    "faggot",
    "retard",
    "retarded",
    # Slurs and hate speech
    "nigger",
    "nigga",
    "chink",
    "spic",
    "kike",
    "gook",
    # Variations with special characters
    "f*ck",
    "sh*t",
    "b*tch",
    "a$$",
    "d*ck",
    # Spaced out and leetspeak
    "f u c k",
    "s h i t",
    "b i t c h",
    "fuk",
    "fck",
    "sht",
    "btch",
)


@dataclass(frozen=True)
class BlockedPattern:
    """
    One structural rule.

    Attributes:
        name: Stable identifier (used in logs and config)
        regex: Compiled expression
        reason: Message shown when the rule fires; None falls back to the
            generic prohibited-patterns message
        anchored: Require the whole comment to match instead of any part
    """
    name: str
    regex: Pattern[str]
    reason: Optional[str] = None
    anchored: bool = False

    def matches(self, content: str) -> bool:
        if self.anchored:
            return self.regex.fullmatch(content) is not None
        return self.regex.search(content) is not None


DEFAULT_BLOCKED_PATTERNS: Tuple[BlockedPattern, ...] = (
    BlockedPattern(
        name="repeated",
        regex=re.compile(r"(.)\1{4,}", re.IGNORECASE),
        reason="Excessive repeated characters detected",
    ),
    BlockedPattern(
        name="all_caps",
        regex=re.compile(r"[A-Z\s!?.]{50,}"),
        reason="Excessive use of capital letters",
        anchored=True,
    ),
    BlockedPattern(
        name="punctuation",
        regex=re.compile(r"[!?]{5,}"),
        reason="Excessive punctuation",
    ),
    BlockedPattern(
        name="email",
        regex=re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}", re.IGNORECASE),
        reason="Email addresses are not allowed in comments",
    ),
    BlockedPattern(
        name="phone",
        regex=re.compile(r"(\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}", re.ASCII),
        reason="Phone numbers are not allowed in comments",
    ),
)


@dataclass(frozen=True)
class ModerationVerdict:
    """
    Outcome of a moderation check.

    `reason` is set iff the comment was rejected. `flagged_words` is set only
    when the rejection came from the blocked-word list.
    """
    is_clean: bool
    reason: Optional[str] = None
    flagged_words: Optional[List[str]] = None

    @classmethod
    def clean(cls) -> "ModerationVerdict":
        return cls(is_clean=True)

    @classmethod
    def blocked(cls, reason: str, flagged_words: Optional[List[str]] = None) -> "ModerationVerdict":
        return cls(is_clean=False, reason=reason, flagged_words=flagged_words)

    def to_dict(self) -> Dict[str, Any]:
        """JSON payload for the front end (absent fields are omitted)."""
        payload: Dict[str, Any] = {"isClean": self.is_clean}
        if self.reason is not None:
            payload["reason"] = self.reason
        if self.flagged_words is not None:
            payload["flaggedWords"] = list(self.flagged_words)
        return payload


def _word_pattern(term: str) -> Pattern[str]:
    # Escape first: "f*ck" and "a$$" must be matched literally.
    return re.compile(rf"\b{re.escape(term)}\b", re.IGNORECASE | re.ASCII)


class ModerationEngine:
    """Evaluates comments against a word list and a pattern table."""

    def __init__(
        self,
        blocked_words: Iterable[str] = DEFAULT_BLOCKED_WORDS,
        blocked_patterns: Sequence[BlockedPattern] = DEFAULT_BLOCKED_PATTERNS,
        min_length: int = COMMENT_MIN_LENGTH,
        max_length: int = COMMENT_MAX_LENGTH,
    ) -> None:
        if min_length < 0 or max_length < min_length:
            raise ValueError(f"Invalid comment length bounds: {min_length}..{max_length}")

        self.min_length = min_length
        self.max_length = max_length

        words: List[Tuple[str, Pattern[str]]] = []
        seen = set()
        for term in blocked_words:
            key = (term or "").strip().lower()
            if not key or key in seen:
                continue
            seen.add(key)
            words.append((key, _word_pattern(key)))
        self._words: Tuple[Tuple[str, Pattern[str]], ...] = tuple(words)
        self._patterns: Tuple[BlockedPattern, ...] = tuple(blocked_patterns)

    @property
    def blocked_words(self) -> Tuple[str, ...]:
        return tuple(term for term, _ in self._words)

    @property
    def blocked_patterns(self) -> Tuple[BlockedPattern, ...]:
        return self._patterns

    def find_blocked_words(self, content: str) -> List[str]:
        """Return every blocked term present in content, in list order."""
        lowered = content.lower()
        return [term for term, regex in self._words if regex.search(lowered)]

    def find_blocked_pattern(self, content: str) -> Optional[BlockedPattern]:
        """Return the first pattern (in table order) that matches content."""
        for pattern in self._patterns:
            if pattern.matches(content):
                return pattern
        return None

    def moderate(self, content: str) -> ModerationVerdict:
        """
        Classify a comment. Never raises; None is treated as empty text.
        """
        text = content if isinstance(content, str) else ("" if content is None else str(content))

        if len(text) < self.min_length:
            return ModerationVerdict.blocked(REASON_TOO_SHORT)

        if len(text) > self.max_length:
            return ModerationVerdict.blocked(
                f"Comment exceeds maximum length of {self.max_length} characters"
            )

        flagged = self.find_blocked_words(text)
        if flagged:
            logger.debug("Comment rejected: %d blocked term(s)", len(flagged))
            return ModerationVerdict.blocked(REASON_INAPPROPRIATE, flagged)

        pattern = self.find_blocked_pattern(text)
        if pattern is not None:
            logger.debug("Comment rejected by pattern %s", pattern.name)
            return ModerationVerdict.blocked(pattern.reason or REASON_PROHIBITED)

        return ModerationVerdict.clean()


_default_engine = ModerationEngine()


def get_default_engine() -> ModerationEngine:
    return _default_engine


def moderate(content: str) -> ModerationVerdict:
    """Moderate with the built-in word list and pattern table."""
    return _default_engine.moderate(content)


def sanitize(content: str) -> str:
    """Clean a comment before moderation (see utils.validation.sanitize_comment)."""
    return sanitize_comment(content)


def engine_from_config(config: Mapping[str, Any]) -> ModerationEngine:
    """
    Build an engine from Flask config.

    Reads COMMENT_MIN_LENGTH, COMMENT_MAX_LENGTH and
    MODERATION_EXTRA_BLOCKED_WORDS (list or comma separated string). Returns
    the shared default engine when nothing differs from the defaults.
    """
    min_length = int(config.get("COMMENT_MIN_LENGTH", COMMENT_MIN_LENGTH))
    max_length = int(config.get("COMMENT_MAX_LENGTH", COMMENT_MAX_LENGTH))

    extra = config.get("MODERATION_EXTRA_BLOCKED_WORDS") or ()
    if isinstance(extra, str):
        extra = [w.strip() for w in extra.split(",")]
    extra = [w for w in extra if w]

    if not extra and min_length == COMMENT_MIN_LENGTH and max_length == COMMENT_MAX_LENGTH:
        return _default_engine

    return ModerationEngine(
        blocked_words=list(DEFAULT_BLOCKED_WORDS) + list(extra),
        min_length=min_length,
        max_length=max_length,
    )
