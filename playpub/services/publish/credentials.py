"""OAuth2 access tokens for the Google Play Developer API.

Two sources are supported:

- an environment variable holding a ready-made token (CI secrets)
- ``gcloud auth print-access-token`` for the active gcloud account

Both fail with ``CredentialsError``, which is never retried.
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from playpub.core.config import CredentialsConfig
from playpub.core.result import Err, Ok, Result
from playpub.platform.process import run as run_process
from playpub.services.publish.errors import CredentialsError
from playpub.services.publish.timeouts import GCLOUD_TIMEOUT_SECONDS

ANDROID_PUBLISHER_SCOPE = "https://www.googleapis.com/auth/androidpublisher"


class CredentialProvider(Protocol):
    @property
    def name(self) -> str:
        """Human-readable name of the credential, shown in task output."""
        ...

    def access_token(self) -> Result[str, CredentialsError]: ...


class EnvTokenCredentials:
    def __init__(self, var: str, environ: Mapping[str, str] | None = None) -> None:
        self.var = var
        self._environ = environ if environ is not None else os.environ

    @property
    def name(self) -> str:
        return f"${self.var}"

    def access_token(self) -> Result[str, CredentialsError]:
        token = self._environ.get(self.var, "").strip()
        if not token:
            return Err(
                CredentialsError(
                    message=f"No access token in environment variable {self.var}",
                    hint=f"Export {self.var}, or set [credentials] use_gcloud = true",
                )
            )
        return Ok(token)


class GcloudCredentials:
    """Token of the active gcloud account.

    The account needs the ``androidpublisher`` scope, e.g. a service account
    activated with ``gcloud auth activate-service-account``.
    """

    def __init__(self, *, cwd: Path | None = None, timeout: float = GCLOUD_TIMEOUT_SECONDS) -> None:
        self._cwd = cwd or Path.cwd()
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "gcloud"

    def access_token(self) -> Result[str, CredentialsError]:
        if shutil.which("gcloud") is None:
            return Err(
                CredentialsError(
                    message="gcloud: missing",
                    hint="Install the Google Cloud CLI: https://cloud.google.com/sdk/docs/install",
                )
            )

        result = run_process(
            ["gcloud", "auth", "print-access-token", f"--scopes={ANDROID_PUBLISHER_SCOPE}"],
            cwd=self._cwd,
            timeout=self._timeout,
        )
        if isinstance(result, Err):
            return Err(
                CredentialsError(
                    message="gcloud could not provide an access token",
                    hint=result.error.stderr.strip() or "Run: gcloud auth login",
                )
            )

        token = result.value.strip()
        if not token:
            return Err(CredentialsError(message="gcloud returned an empty access token"))
        return Ok(token)


def credentials_from_config(
    config: CredentialsConfig, environ: Mapping[str, str] | None = None
) -> CredentialProvider:
    """Pick the token source: the environment variable when set, else gcloud if enabled."""
    env = environ if environ is not None else os.environ
    if config.use_gcloud and not env.get(config.token_env, "").strip():
        return GcloudCredentials()
    return EnvTokenCredentials(config.token_env, env)
