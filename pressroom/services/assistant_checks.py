"""
Reviewer assistant checks for pending submissions.

Produces hints that help a moderator decide on a submission. Unlike comment
moderation these never reject anything on their own; warnings marked
`blocking` tell the moderator the submission should not be approved as is.

Two sources:
- grammar: LanguageTool (public HTTP API). If the call fails for any reason a
  small local fallback runs instead (very long sentences, punctuation
  clusters).
- copyright: originality and sourcing heuristics. Trigram Jaccard similarity
  against recent posts and submissions, title overlap, factual-claim signals
  without sources, and incomplete image/thumbnail attribution.
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set

import requests
from flask import current_app, has_app_context

from pressroom.services.record_store import PostType
from pressroom.services.supabase_client import get_admin_client

logger = logging.getLogger(__name__)

LANGUAGE_TOOL_ENDPOINT = "https://api.languagetool.org/v2/check"
MAX_GRAMMAR_WARNINGS = 8
MAX_CANDIDATES = 120
LONG_SENTENCE_WORDS = 36

HIGH_SIMILARITY = 0.7
MEDIUM_SIMILARITY = 0.45
TITLE_SIMILARITY = 0.85

STOP_WORDS = {
    "a", "an", "the", "and", "or", "but", "if", "then", "this", "that",
    "is", "are", "was", "were", "be", "been", "to", "of", "in", "on",
    "for", "with", "as", "by", "at", "from", "it", "its", "into", "about",
    "their", "our", "your",
}

_CODE_SPANS = re.compile(r"`{1,3}[^`]*`{1,3}")
_LINKS = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_MARKDOWN_MARKS = re.compile(r"[#>*_~\-]+")
_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")
_SENTENCE_END = re.compile(r"[.!?]")
_PUNCTUATION_CLUSTER = re.compile(r"[!?]{3,}")
_CLAIM_SIGNALS = re.compile(
    r"\b\d+(?:\.\d+)?%|\baccording to\b|\bresearch\b|\bstudy\b|\"[^\"]+\"",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class AssistantWarning:
    id: str
    source: str
    severity: str
    message: str
    evidence: Optional[str] = None
    suggested_issue_codes: List[str] = field(default_factory=list)
    blocking: bool = False

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "id": self.id,
            "source": self.source,
            "severity": self.severity,
            "message": self.message,
            "suggestedIssueCodes": list(self.suggested_issue_codes),
            "blocking": self.blocking,
        }
        if self.evidence is not None:
            payload["evidence"] = self.evidence
        return payload


# ============================================================================
# Text similarity
# ============================================================================

def strip_markdown(text: str) -> str:
    text = _CODE_SPANS.sub(" ", text)
    text = _LINKS.sub(r"\1", text)
    return _MARKDOWN_MARKS.sub(" ", text)


def _normalize(text: str) -> str:
    text = strip_markdown(text).lower()
    text = _NON_ALNUM.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def tokenize(text: str) -> List[str]:
    return [t for t in _normalize(text or "").split(" ") if len(t) > 1 and t not in STOP_WORDS]


def make_ngrams(tokens: List[str], size: int) -> Set[str]:
    if len(tokens) < size:
        return set(tokens)
    return {" ".join(tokens[i:i + size]) for i in range(len(tokens) - size + 1)}


def jaccard_similarity(a: Set[str], b: Set[str]) -> float:
    if not a or not b:
        return 0.0
    intersection = len(a & b)
    union = len(a) + len(b) - intersection
    return intersection / union if union else 0.0


def score_similarity(source: str, candidate: str) -> float:
    """Trigram Jaccard similarity of two bodies of text (0..1)."""
    source_tokens = tokenize(source)
    candidate_tokens = tokenize(candidate)
    if not source_tokens or not candidate_tokens:
        return 0.0
    return jaccard_similarity(make_ngrams(source_tokens, 3), make_ngrams(candidate_tokens, 3))


def score_title_overlap(source_title: str, candidate_title: str) -> float:
    return jaccard_similarity(set(tokenize(source_title)), set(tokenize(candidate_title)))


def is_complete_attribution(value: Any) -> bool:
    """An attribution needs both a source URL and an author/creator name."""
    if not isinstance(value, dict):
        return False
    source_url = value.get("sourceUrl") or value.get("url") or value.get("link")
    author_name = value.get("authorName") or value.get("creator") or value.get("author")
    return isinstance(source_url, str) and isinstance(author_name, str)


# ============================================================================
# Grammar
# ============================================================================

def map_grammar_issue_codes(issue_type: str) -> List[str]:
    normalized = (issue_type or "").lower()
    if any(word in normalized for word in ("misspelling", "typo", "punctuation", "grammar")):
        return ["SPELLING_AND_GRAMMAR"]
    return ["CLARITY_AND_STRUCTURE"]


def local_grammar_fallback(content: str) -> List[AssistantWarning]:
    warnings: List[AssistantWarning] = []

    sentences = [s.strip() for s in _SENTENCE_END.split(content or "") if s.strip()]
    long_sentences = sum(1 for s in sentences if len(s.split()) > LONG_SENTENCE_WORDS)
    if long_sentences:
        warnings.append(AssistantWarning(
            id="grammar-long-sentences",
            source="grammar",
            severity="medium" if long_sentences > 2 else "low",
            message="Some sentences are very long and may reduce readability.",
            evidence=f"{long_sentences} long sentence(s) detected.",
            suggested_issue_codes=["CLARITY_AND_STRUCTURE"],
        ))

    clusters = len(_PUNCTUATION_CLUSTER.findall(content or ""))
    if clusters:
        warnings.append(AssistantWarning(
            id="grammar-punctuation-cluster",
            source="grammar",
            severity="low",
            message="Repeated punctuation was detected.",
            evidence=f"{clusters} repeated punctuation cluster(s).",
            suggested_issue_codes=["SPELLING_AND_GRAMMAR"],
        ))

    return warnings


def _language_tool_endpoint() -> str:
    if has_app_context():
        return current_app.config.get("LANGUAGE_TOOL_ENDPOINT") or LANGUAGE_TOOL_ENDPOINT
    return LANGUAGE_TOOL_ENDPOINT


def run_grammar_checks(content: str, endpoint: Optional[str] = None) -> List[AssistantWarning]:
    """LanguageTool check; falls back to local heuristics on any failure."""
    try:
        r = requests.post(
            endpoint or _language_tool_endpoint(),
            data={"text": content, "language": "en-US", "enabledOnly": "false"},
            timeout=10,
        )
        r.raise_for_status()
        matches = r.json().get("matches") or []
    except Exception as e:
        logger.warning("LanguageTool unavailable, using local grammar checks: %s", e)
        return local_grammar_fallback(content)

    warnings: List[AssistantWarning] = []
    for index, match in enumerate(matches[:MAX_GRAMMAR_WARNINGS]):
        issue_type = (match.get("rule") or {}).get("issueType") or "style"
        evidence = ((match.get("context") or {}).get("text") or "").strip() or None
        warnings.append(AssistantWarning(
            id=f"grammar-{issue_type}-{index}",
            source="grammar",
            severity="low" if issue_type == "misspelling" else "medium",
            message=match.get("message") or "Potential grammar issue detected.",
            evidence=evidence,
            suggested_issue_codes=map_grammar_issue_codes(issue_type),
        ))
    return warnings


# ============================================================================
# Copyright / originality
# ============================================================================

def run_copyright_checks(
    submission: Dict[str, Any],
    candidates: Iterable[Dict[str, Any]],
) -> List[AssistantWarning]:
    """
    Originality and sourcing checks for one submission.

    Args:
        submission: Row with post_type, title, content, sources, images,
            thumbnail_url, image_attributions, thumbnail_attribution
        candidates: Existing posts/submissions ({"title", "content"}) to
            compare against
    """
    warnings: List[AssistantWarning] = []
    content = submission.get("content") or ""
    title = submission.get("title") or ""
    sources = (submission.get("sources") or "").strip()
    candidates = list(candidates)

    best_content = max(
        ((score_similarity(content, c.get("content") or ""), c.get("title") or "") for c in candidates),
        key=lambda pair: pair[0],
        default=None,
    )
    if best_content and best_content[0] >= HIGH_SIMILARITY:
        warnings.append(AssistantWarning(
            id="copyright-high-similarity",
            source="copyright",
            severity="high",
            message="High similarity detected with previously published or submitted content.",
            evidence=f'Similar title: "{best_content[1]}" (score {best_content[0]:.2f})',
            suggested_issue_codes=["ORIGINALITY_AND_RIGHTS"],
            blocking=True,
        ))
    elif best_content and best_content[0] >= MEDIUM_SIMILARITY:
        warnings.append(AssistantWarning(
            id="copyright-medium-similarity",
            source="copyright",
            severity="medium",
            message="Moderate similarity detected with existing content. Review originality.",
            evidence=f'Similar title: "{best_content[1]}" (score {best_content[0]:.2f})',
            suggested_issue_codes=["ORIGINALITY_AND_RIGHTS"],
        ))

    best_title = max(
        ((score_title_overlap(title, c.get("title") or ""), c.get("title") or "") for c in candidates),
        key=lambda pair: pair[0],
        default=None,
    )
    if best_title and best_title[0] >= TITLE_SIMILARITY:
        warnings.append(AssistantWarning(
            id="copyright-similar-title",
            source="copyright",
            severity="medium",
            message="This title is very similar to an existing post/submission title.",
            evidence=f'"{best_title[1]}" (score {best_title[0]:.2f})',
            suggested_issue_codes=["TITLE_ACCURACY", "CONTENT_ACCURACY", "ORIGINALITY_AND_RIGHTS"],
        ))

    citation_codes = [
        "UNSUPPORTED_CLAIMS",
        "CONTENT_ACCURACY",
        "CITATION_FOR_CLAIMS",
        "SOURCES_PRESENT_AND_FORMATTED",
    ]
    claim_signals = sum(1 for _ in _CLAIM_SIGNALS.finditer(content))
    if claim_signals >= 3 and not sources:
        warnings.append(AssistantWarning(
            id="copyright-missing-citations-high",
            source="copyright",
            severity="high",
            message="Multiple factual claim signals were detected without sources.",
            evidence=f"{claim_signals} claim/quote indicator(s) with no sources.",
            suggested_issue_codes=citation_codes,
            blocking=True,
        ))
    elif claim_signals > 0 and not sources:
        warnings.append(AssistantWarning(
            id="copyright-missing-citations-medium",
            source="copyright",
            severity="medium",
            message="Claims or quotes detected but sources are missing.",
            evidence=f"{claim_signals} claim/quote indicator(s) with no sources.",
            suggested_issue_codes=citation_codes,
        ))

    post_type = submission.get("post_type")
    images = submission.get("images") or []
    if post_type == PostType.SM_EXPO.value and images:
        attributions = submission.get("image_attributions")
        attributions = attributions if isinstance(attributions, list) else []
        complete = sum(1 for a in attributions if is_complete_attribution(a))
        if complete < len(images):
            warnings.append(AssistantWarning(
                id="copyright-image-attribution",
                source="copyright",
                severity="medium",
                message="Some project images appear to be missing complete attribution.",
                evidence=f"{complete}/{len(images)} image attribution record(s) look complete.",
                suggested_issue_codes=["IMAGE_ATTRIBUTION_COMPLETE"],
            ))

    if post_type == PostType.SM_NOW.value and submission.get("thumbnail_url"):
        if not is_complete_attribution(submission.get("thumbnail_attribution")):
            warnings.append(AssistantWarning(
                id="copyright-thumbnail-attribution",
                source="copyright",
                severity="medium",
                message="Thumbnail attribution appears incomplete or missing.",
                suggested_issue_codes=["THUMBNAIL_ATTRIBUTION_COMPLETE"],
            ))

    return warnings


# ============================================================================
# Entry point
# ============================================================================

SUBMISSION_CHECK_COLUMNS = (
    "id,author_id,post_type,title,content,sources,images,thumbnail_url,"
    "image_attributions,thumbnail_attribution"
)


def get_submission_for_checks(submission_id: str) -> Optional[Dict[str, Any]]:
    supabase = get_admin_client()
    if not supabase:
        return None

    response = supabase.table("submissions") \
        .select(SUBMISSION_CHECK_COLUMNS) \
        .eq("id", submission_id) \
        .limit(1) \
        .execute()
    return response.data[0] if response.data else None


def _comparison_candidates(submission_id: str) -> List[Dict[str, Any]]:
    supabase = get_admin_client()
    if not supabase:
        return []

    posts = supabase.table("posts") \
        .select("id,title,content") \
        .order("updated_at", desc=True) \
        .limit(MAX_CANDIDATES) \
        .execute()
    others = supabase.table("submissions") \
        .select("id,title,content") \
        .neq("id", submission_id) \
        .order("updated_at", desc=True) \
        .limit(MAX_CANDIDATES) \
        .execute()
    return list(posts.data or []) + list(others.data or [])


def get_assistant_warnings(submission: Dict[str, Any]) -> List[AssistantWarning]:
    """Grammar warnings followed by copyright warnings for a submission row."""
    grammar = run_grammar_checks(submission.get("content") or "")
    copyright_warnings = run_copyright_checks(submission, _comparison_candidates(submission["id"]))
    return grammar + copyright_warnings
