"""Move command - assign APKs already on Google Play to another track."""

from __future__ import annotations

from pathlib import Path

import typer

from playpub.cli.commands._helpers import resolve_dir, unwrap_or_exit
from playpub.cli.context import build_context, connect
from playpub.services.publish.apk import AaptArtifactReader, collect_artifacts
from playpub.services.publish.options import validate_move_options
from playpub.services.publish.task import MoveRequest, move_to_track, summarize


def move(
    track: str | None = typer.Option(
        None, "--track", help="Release track: alpha, beta or production", show_default=False
    ),
    rollout: str | None = typer.Option(
        None,
        "--rollout",
        help="Staged rollout percentage for production (0.5, 1, 5, 10, 20, 50, 100)",
        show_default=False,
    ),
    app_id: str | None = typer.Option(
        None, "--app-id", help="Application ID (with --version-codes)", show_default=False
    ),
    version_codes: str | None = typer.Option(
        None,
        "--version-codes",
        help="Version codes to move, comma or space separated",
        show_default=False,
    ),
    apk: str | None = typer.Option(
        None,
        "--apk",
        help="Read application ID and version codes from APK file(s) matching this pattern",
        show_default=False,
    ),
    base: Path | None = typer.Option(
        None, "--base", help="Directory the --apk pattern is relative to", show_default=False
    ),
    config: Path | None = typer.Option(
        None, "--config", help="Config file (default: ./playpub.toml)", show_default=False
    ),
) -> None:
    """Assign existing APKs to a release track."""
    ctx = build_context(config)
    defaults = ctx.config.publish

    options = unwrap_or_exit(
        validate_move_options(
            track_name=track or defaults.track,
            rollout_percentage=rollout or defaults.rollout_percentage,
            application_id=app_id,
            version_codes=version_codes,
            apk_pattern=apk,
        ),
        ctx,
    )

    application_id = options.application_id
    codes = options.version_codes
    if options.apk_pattern is not None:
        batch = unwrap_or_exit(
            collect_artifacts(
                resolve_dir(base, ctx),
                options.apk_pattern,
                reader=AaptArtifactReader(),
                console=ctx.console,
            ),
            ctx,
        )
        application_id = batch.application_id
        codes = batch.version_codes
        ctx.console.newline()

    # validate_move_options guarantees one of the two sources.
    assert application_id is not None

    connection = unwrap_or_exit(connect(ctx), ctx)
    result = move_to_track(
        connection.backend,
        MoveRequest(
            application_id=application_id,
            version_codes=codes,
            track=options.target.track,
            rollout_fraction=options.target.rollout_fraction,
            credential_name=connection.credential_name,
        ),
        console=ctx.console,
    )
    outcome = unwrap_or_exit(result, ctx)
    ctx.console.success(summarize(outcome))
