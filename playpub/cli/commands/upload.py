"""Upload command - upload APKs and assign them to a release track."""

from __future__ import annotations

from pathlib import Path

import typer

from playpub.cli.commands._helpers import resolve_dir, unwrap_or_exit
from playpub.cli.context import build_context, connect
from playpub.platform.files import find_files
from playpub.services.publish.apk import AaptArtifactReader, collect_artifacts
from playpub.services.publish.expansion import find_expansion_files
from playpub.services.publish.model import ExpansionFileSet
from playpub.services.publish.options import validate_upload_options
from playpub.services.publish.task import UploadRequest, summarize, upload_artifacts

EXPANSION_FILE_PATTERN = "**/*.obb"


def upload(
    pattern: str = typer.Argument(
        ..., help="APK file path or glob pattern(s), comma separated (e.g. '**/*-release.apk')"
    ),
    base: Path | None = typer.Option(
        None, "--base", help="Directory the pattern is relative to (default: cwd)", show_default=False
    ),
    track: str | None = typer.Option(
        None, "--track", help="Release track: alpha, beta or production", show_default=False
    ),
    rollout: str | None = typer.Option(
        None,
        "--rollout",
        help="Staged rollout percentage for production (0.5, 1, 5, 10, 20, 50, 100)",
        show_default=False,
    ),
    expansion_dir: Path | None = typer.Option(
        None,
        "--expansion-dir",
        help="Directory holding main.<versionCode>.<applicationId>.obb / patch.* files",
        show_default=False,
    ),
    inherit_expansion: bool | None = typer.Option(
        None,
        "--inherit-expansion/--no-inherit-expansion",
        help="Reuse the latest existing expansion files when none are given",
        show_default=False,
    ),
    config: Path | None = typer.Option(
        None, "--config", help="Config file (default: ./playpub.toml)", show_default=False
    ),
) -> None:
    """Upload APKs to Google Play and assign them to a release track."""
    ctx = build_context(config)
    defaults = ctx.config.publish

    options = validate_upload_options(
        pattern=pattern,
        track_name=track or defaults.track,
        rollout_percentage=rollout or defaults.rollout_percentage,
    )
    target = unwrap_or_exit(options, ctx)
    inherit = defaults.inherit_expansion_files if inherit_expansion is None else inherit_expansion

    batch = unwrap_or_exit(
        collect_artifacts(
            resolve_dir(base, ctx),
            pattern,
            reader=AaptArtifactReader(),
            console=ctx.console,
        ),
        ctx,
    )

    expansion_files: dict[int, ExpansionFileSet] = {}
    if expansion_dir is not None:
        obb_dir = resolve_dir(expansion_dir, ctx)
        found = find_expansion_files(
            obb_dir / relative for relative in find_files(obb_dir, EXPANSION_FILE_PATTERN)
        )
        expansion_files = unwrap_or_exit(found, ctx)
    ctx.console.newline()

    connection = unwrap_or_exit(connect(ctx), ctx)
    result = upload_artifacts(
        connection.backend,
        UploadRequest(
            application_id=batch.application_id,
            artifacts=batch.artifacts,
            track=target.track,
            rollout_fraction=target.rollout_fraction,
            expansion_files=expansion_files,
            inherit_expansion_files=inherit,
            credential_name=connection.credential_name,
        ),
        console=ctx.console,
    )
    outcome = unwrap_or_exit(result, ctx)
    ctx.console.success(summarize(outcome))

