"""
Flask CLI commands for maintenance tasks.

Usage:
    flask cleanup-duplicate-drafts                        # Dry run (list matches)
    flask cleanup-duplicate-drafts --minutes 60 --limit 20
    flask cleanup-duplicate-drafts --author <user-id>     # One author only
    flask cleanup-duplicate-drafts --apply                # Delete matched drafts
"""

from __future__ import annotations

import click
from flask import current_app
from flask.cli import with_appcontext

from pressroom.services import reconciliation


def _validate_author(ctx, param, value):
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise click.BadParameter("must be a non-empty user id")
    return value


@click.command("cleanup-duplicate-drafts")
@click.option("--apply/--dry-run", "apply", default=False,
              help="Delete matched drafts. Without --apply, only lists matches (dry run).")
@click.option("--minutes", type=click.FloatRange(min=0, min_open=True), default=None,
              help="Max minutes between a draft's last update and its submission (default 120).")
@click.option("--early-tolerance", type=click.FloatRange(min=0), default=None,
              help="Minutes a submission may predate the draft update, for clock skew (default 1).")
@click.option("--limit", type=click.IntRange(min=1), default=None,
              help="Process at most this many matches (closest in time first).")
@click.option("--author", "author_id", default=None, callback=_validate_author,
              help="Only consider drafts and submissions by this user id.")
@with_appcontext
def cleanup_duplicate_drafts_command(
    apply: bool,
    minutes: float | None,
    early_tolerance: float | None,
    limit: int | None,
    author_id: str | None,
) -> None:
    """Delete drafts left behind after they were submitted."""
    from pressroom.services import supabase_client

    if minutes is None:
        minutes = float(current_app.config.get("CLEANUP_WINDOW_MINUTES", reconciliation.DEFAULT_WINDOW_MINUTES))
    if early_tolerance is None:
        early_tolerance = float(current_app.config.get(
            "CLEANUP_EARLY_TOLERANCE_MINUTES", reconciliation.EARLY_TOLERANCE_MINUTES
        ))
    if minutes <= 0 or early_tolerance < 0:
        raise click.UsageError("Cleanup window must be positive and early tolerance non-negative.")

    store = supabase_client.get_record_store()
    if store is None:
        click.echo("Error: Supabase admin client not configured (SUPABASE_SERVICE_ROLE_KEY missing).")
        raise SystemExit(1)

    click.echo(f"Mode: {'APPLY' if apply else 'DRY-RUN'} | window={minutes:g}m")
    if limit:
        click.echo(f"Limit: {limit} matches")
    if author_id:
        click.echo(f"Filter authorId: {author_id}")

    try:
        report = reconciliation.run_cleanup(
            store,
            apply=False,
            window_minutes=minutes,
            early_tolerance_minutes=early_tolerance,
            limit=limit,
            author_id=author_id,
        )
    except Exception as e:
        current_app.logger.exception("Duplicate draft scan failed")
        click.echo(f"Failed to clean duplicate draft/submission pairs: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"Drafts scanned: {report.drafts_scanned}")
    click.echo(f"Pending submissions scanned: {report.submissions_scanned}")
    click.echo(f"Matched duplicate pairs: {len(report.matches)}")

    if not report.matches:
        click.echo("No cleanup candidates found.")
        return

    for match in report.matches:
        click.echo(match.describe())

    if not apply:
        click.echo("Dry-run only. Re-run with --apply to delete matched drafts.")
        return

    summary = reconciliation.apply_matches(store, report.matches)

    for result in summary.results:
        if result.status == reconciliation.STATUS_DELETED:
            click.echo(f"Deleted draft {result.draft_id}")
        elif result.status == reconciliation.STATUS_SKIPPED:
            click.echo(f"Skipped draft {result.draft_id} ({result.reason})")
        else:
            click.echo(f"Failed to delete draft {result.draft_id}: {result.reason}", err=True)

    click.echo(
        f"Cleanup complete. deleted={summary.deleted}, skipped={summary.skipped}, failed={summary.failed}"
    )
