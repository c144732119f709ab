"""
Tests for reviewer assistant checks (grammar and originality hints).

LanguageTool is never called: requests.post is patched in every grammar test.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from pressroom.services import assistant_checks
from pressroom.services.assistant_checks import (
    is_complete_attribution,
    local_grammar_fallback,
    map_grammar_issue_codes,
    run_copyright_checks,
    run_grammar_checks,
    score_similarity,
    score_title_overlap,
    strip_markdown,
    tokenize,
)

ESSAY = (
    "Student journalists covered the robotics competition downtown and "
    "interviewed several teams about their autonomous navigation designs."
)


def _ids(warnings):
    return [w.id for w in warnings]


class TestTextSimilarity:
    def test_tokenize_drops_stop_words_and_markdown(self):
        assert tokenize("# The **Robotics** [team](http://x.y) is `code` here") == [
            "robotics", "team", "here",
        ]

    def test_strip_markdown_keeps_link_text(self):
        assert "team" in strip_markdown("[team](http://example.com)")
        assert "example" not in strip_markdown("[team](http://example.com)")

    def test_identical_text_scores_one(self):
        assert score_similarity(ESSAY, ESSAY) == pytest.approx(1.0)

    def test_unrelated_text_scores_zero(self):
        assert score_similarity(ESSAY, "Bake sale raises money for library books") == 0.0

    def test_empty_text_scores_zero(self):
        assert score_similarity("", ESSAY) == 0.0

    def test_title_overlap(self):
        assert score_title_overlap("Robotics Team Wins", "robotics team wins!") == pytest.approx(1.0)
        assert score_title_overlap("Robotics Team Wins", "Chess Club News") == 0.0


class TestAttribution:
    @pytest.mark.parametrize("value,expected", [
        ({"sourceUrl": "https://x.y", "authorName": "Ana"}, True),
        ({"url": "https://x.y", "creator": "Ana"}, True),
        ({"sourceUrl": "https://x.y"}, False),
        ("Ana", False),
        (None, False),
    ])
    def test_is_complete_attribution(self, value, expected):
        assert is_complete_attribution(value) is expected


class TestGrammar:
    def test_issue_code_mapping(self):
        assert map_grammar_issue_codes("misspelling") == ["SPELLING_AND_GRAMMAR"]
        assert map_grammar_issue_codes("style") == ["CLARITY_AND_STRUCTURE"]

    def test_local_fallback_flags_long_sentences_and_clusters(self):
        long_sentence = " ".join(["word"] * 40) + "."

        warnings = local_grammar_fallback(long_sentence + " Really!!! ")

        assert _ids(warnings) == ["grammar-long-sentences", "grammar-punctuation-cluster"]
        assert warnings[0].severity == "low"

    def test_local_fallback_clean_text(self):
        assert local_grammar_fallback("Short and tidy. Nothing odd here.") == []

    @patch("pressroom.services.assistant_checks.requests.post")
    def test_falls_back_when_service_unavailable(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("offline")

        warnings = run_grammar_checks("What!!!")

        assert _ids(warnings) == ["grammar-punctuation-cluster"]

    @patch("pressroom.services.assistant_checks.requests.post")
    def test_maps_language_tool_matches(self, mock_post):
        mock_post.return_value = Mock(status_code=200)
        mock_post.return_value.json.return_value = {
            "matches": [
                {
                    "message": "Possible spelling mistake found.",
                    "rule": {"issueType": "misspelling"},
                    "context": {"text": " teh robot "},
                },
                {"message": "Consider rephrasing.", "rule": {"issueType": "style"}},
            ]
        }

        warnings = run_grammar_checks("teh robot", endpoint="http://lt.local/v2/check")

        assert _ids(warnings) == ["grammar-misspelling-0", "grammar-style-1"]
        assert warnings[0].severity == "low"
        assert warnings[0].evidence == "teh robot"
        assert warnings[1].severity == "medium"
        assert warnings[1].suggested_issue_codes == ["CLARITY_AND_STRUCTURE"]
        assert mock_post.call_args.args[0] == "http://lt.local/v2/check"
        assert mock_post.call_args.kwargs["timeout"] == 10

    @patch("pressroom.services.assistant_checks.requests.post")
    def test_caps_number_of_warnings(self, mock_post):
        mock_post.return_value.json.return_value = {
            "matches": [{"message": "m", "rule": {"issueType": "typo"}}] * 20
        }

        assert len(run_grammar_checks("text")) == assistant_checks.MAX_GRAMMAR_WARNINGS


class TestCopyright:
    def test_copied_content_is_blocking(self):
        submission = {"title": "Robotics day", "content": ESSAY, "post_type": "SM_NOW"}
        candidates = [{"title": "Robotics day", "content": ESSAY}]

        warnings = run_copyright_checks(submission, candidates)

        assert _ids(warnings) == ["copyright-high-similarity", "copyright-similar-title"]
        assert warnings[0].blocking is True
        assert warnings[1].blocking is False

    def test_original_content_has_no_warnings(self):
        submission = {"title": "Robotics day", "content": ESSAY, "post_type": "SM_NOW"}
        candidates = [{"title": "Bake sale", "content": "Bake sale raises money for library books"}]

        assert run_copyright_checks(submission, candidates) == []

    def test_unsourced_claims_are_blocking(self):
        submission = {
            "title": "Sleep",
            "content": "According to one survey, 40% of students skip breakfast. Research suggests otherwise.",
        }

        warnings = run_copyright_checks(submission, [])

        assert _ids(warnings) == ["copyright-missing-citations-high"]
        assert warnings[0].blocking is True

    def test_single_claim_is_medium(self):
        submission = {"title": "Sleep", "content": "About 40% of students skip breakfast."}

        warnings = run_copyright_checks(submission, [])

        assert _ids(warnings) == ["copyright-missing-citations-medium"]

    def test_sources_silence_claim_warnings(self):
        submission = {
            "title": "Sleep",
            "content": "According to one survey, 40% of students skip breakfast. Research suggests otherwise.",
            "sources": "https://example.org/survey",
        }

        assert run_copyright_checks(submission, []) == []

    def test_expo_images_need_attribution(self):
        submission = {
            "title": "Project",
            "content": "Our build log.",
            "post_type": "SM_EXPO",
            "images": ["a.png", "b.png"],
            "image_attributions": [{"sourceUrl": "https://x.y", "authorName": "Ana"}],
        }

        warnings = run_copyright_checks(submission, [])

        assert _ids(warnings) == ["copyright-image-attribution"]
        assert warnings[0].evidence == "1/2 image attribution record(s) look complete."

    def test_now_thumbnail_needs_attribution(self):
        submission = {
            "title": "News",
            "content": "Short update.",
            "post_type": "SM_NOW",
            "thumbnail_url": "https://cdn.example/thumb.jpg",
            "thumbnail_attribution": {"sourceUrl": "https://x.y"},
        }

        warnings = run_copyright_checks(submission, [])

        assert _ids(warnings) == ["copyright-thumbnail-attribution"]


class TestAssistantWarnings:
    @patch("pressroom.services.assistant_checks._comparison_candidates", return_value=[])
    @patch("pressroom.services.assistant_checks.run_grammar_checks")
    def test_grammar_then_copyright(self, mock_grammar, mock_candidates):
        mock_grammar.return_value = local_grammar_fallback("Wow!!!")
        submission = {"id": "s1", "title": "Sleep", "content": "About 40% of students skip breakfast."}

        warnings = assistant_checks.get_assistant_warnings(submission)

        assert _ids(warnings) == ["grammar-punctuation-cluster", "copyright-missing-citations-medium"]
        mock_candidates.assert_called_once_with("s1")
