from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from playpub.core.config import CONFIG_FILE_NAME, Config, load_config, load_config_or_default
from playpub.core.errors import ErrorCode
from playpub.core.result import Err, Ok, Result
from playpub.output.console import ConsoleProtocol, RichConsole
from playpub.output.errors import print_config_error
from playpub.services.publish.backend import PublisherBackend
from playpub.services.publish.credentials import credentials_from_config
from playpub.services.publish.errors import CredentialsError
from playpub.services.publish.http_backend import HttpPublisherBackend


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: Config
    console: ConsoleProtocol


@dataclass(frozen=True, slots=True)
class PublisherConnection:
    backend: PublisherBackend
    credential_name: str


def build_context(config_path: Path | None = None) -> CLIContext:
    """Load configuration and set up console output.

    An explicit ``--config`` file must exist; the default ``playpub.toml`` in
    the working directory is optional.
    """
    console = RichConsole()
    root = Path.cwd()

    if config_path is not None:
        config_result = load_config(config_path.expanduser())
    else:
        config_result = load_config_or_default(root / CONFIG_FILE_NAME)

    if isinstance(config_result, Err):
        print_config_error(config_result.error, console)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(root=root, config=config_result.value, console=console)


def connect(ctx: CLIContext) -> Result[PublisherConnection, CredentialsError]:
    provider = credentials_from_config(ctx.config.credentials)
    token = provider.access_token()
    if isinstance(token, Err):
        return token

    api = ctx.config.api
    backend = HttpPublisherBackend(
        token.value,
        base_url=api.base_url,
        upload_base_url=api.upload_base_url,
        timeout=api.timeout_seconds,
        upload_timeout=api.upload_timeout_seconds,
    )
    return Ok(PublisherConnection(backend=backend, credential_name=provider.name))
