"""
Tests for the `flask cleanup-duplicate-drafts` command.

The record store is patched with an InMemoryRecordStore so no database is
touched.
"""

from unittest.mock import patch

from pressroom.cli import cleanup_duplicate_drafts_command
from pressroom.services.record_store import InMemoryRecordStore

STORE_PATH = "pressroom.services.supabase_client.get_record_store"


class TestDryRun:
    @patch(STORE_PATH)
    def test_lists_matches_without_deleting(self, mock_store, runner, store):
        mock_store.return_value = store

        result = runner.invoke(cleanup_duplicate_drafts_command, [])

        assert result.exit_code == 0
        assert "Mode: DRY-RUN | window=120m" in result.output
        assert "Drafts scanned: 2" in result.output
        assert "Pending submissions scanned: 1" in result.output
        assert "Matched duplicate pairs: 1" in result.output
        assert "draftId=d1" in result.output
        assert "Dry-run only. Re-run with --apply to delete matched drafts." in result.output
        assert "d1" in store.drafts

    @patch(STORE_PATH)
    def test_explicit_dry_run_flag(self, mock_store, runner, store):
        mock_store.return_value = store

        result = runner.invoke(cleanup_duplicate_drafts_command, ["--dry-run"])

        assert result.exit_code == 0
        assert "d1" in store.drafts

    @patch(STORE_PATH)
    def test_no_candidates(self, mock_store, runner, draft_factory):
        mock_store.return_value = InMemoryRecordStore(drafts=[draft_factory()])

        result = runner.invoke(cleanup_duplicate_drafts_command, [])

        assert result.exit_code == 0
        assert "Matched duplicate pairs: 0" in result.output
        assert "No cleanup candidates found." in result.output

    @patch(STORE_PATH)
    def test_options_are_echoed(self, mock_store, runner, store):
        mock_store.return_value = store

        result = runner.invoke(
            cleanup_duplicate_drafts_command,
            ["--minutes", "1.5", "--limit", "3", "--author", "u1"],
        )

        assert result.exit_code == 0
        assert "window=1.5m" in result.output
        assert "Limit: 3 matches" in result.output
        assert "Filter authorId: u1" in result.output
        # the pair is 10 minutes apart, outside a 1.5 minute window
        assert "Matched duplicate pairs: 0" in result.output

    @patch(STORE_PATH)
    def test_window_default_comes_from_config(self, mock_store, app, runner, store):
        mock_store.return_value = store
        app.config["CLEANUP_WINDOW_MINUTES"] = 5

        result = runner.invoke(cleanup_duplicate_drafts_command, [])

        assert "window=5m" in result.output
        assert "Matched duplicate pairs: 0" in result.output


class TestApply:
    @patch(STORE_PATH)
    def test_apply_deletes_matched_drafts(self, mock_store, runner, store):
        mock_store.return_value = store

        result = runner.invoke(cleanup_duplicate_drafts_command, ["--apply"])

        assert result.exit_code == 0
        assert "Mode: APPLY" in result.output
        assert "Deleted draft d1" in result.output
        assert "Cleanup complete. deleted=1, skipped=0, failed=0" in result.output
        assert "d1" not in store.drafts
        assert "d2" in store.drafts
        assert store.users["u1"]["draft_ids"] == ["d2"]


class TestArguments:
    @patch(STORE_PATH)
    def test_zero_window_is_rejected(self, mock_store, runner):
        result = runner.invoke(cleanup_duplicate_drafts_command, ["--minutes", "0"])

        assert result.exit_code == 2
        mock_store.assert_not_called()

    @patch(STORE_PATH)
    def test_non_numeric_window_is_rejected(self, mock_store, runner):
        result = runner.invoke(cleanup_duplicate_drafts_command, ["--minutes", "soon"])
        assert result.exit_code == 2

    @patch(STORE_PATH)
    def test_zero_limit_is_rejected(self, mock_store, runner):
        result = runner.invoke(cleanup_duplicate_drafts_command, ["--limit", "0"])
        assert result.exit_code == 2

    @patch(STORE_PATH)
    def test_blank_author_is_rejected(self, mock_store, runner):
        result = runner.invoke(cleanup_duplicate_drafts_command, ["--author", "   "])
        assert result.exit_code == 2

    @patch(STORE_PATH)
    def test_unknown_flag_is_rejected(self, mock_store, runner):
        result = runner.invoke(cleanup_duplicate_drafts_command, ["--force"])

        assert result.exit_code == 2
        mock_store.assert_not_called()

    @patch(STORE_PATH)
    def test_missing_store_exits_with_error(self, mock_store, runner):
        mock_store.return_value = None

        result = runner.invoke(cleanup_duplicate_drafts_command, [])

        assert result.exit_code == 1
        assert "not configured" in result.output

    @patch(STORE_PATH)
    def test_store_failure_exits_with_error(self, mock_store, runner):
        class BrokenStore(InMemoryRecordStore):
            def find_drafts(self, author_id=None):
                raise RuntimeError("connection reset")

        mock_store.return_value = BrokenStore()

        result = runner.invoke(cleanup_duplicate_drafts_command, [])

        assert result.exit_code == 1
