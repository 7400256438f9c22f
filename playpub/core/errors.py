"""Process exit codes for playpub commands.

Every failure kind reported by the publisher maps onto one of these codes so
that CI jobs can tell a bad job configuration from a Google Play outage or a
commit whose outcome could not be verified.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success
    - 1: User error (invalid options, local policy violation)
    - 2: Environment error (credentials, missing tools, unreadable APK)
    - 4: Remote error (Google Play rejected a request or was unreachable)
    - 6: Unverified (changes may or may not have been applied)
    - 130: Interrupted by the user
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    REMOTE_ERROR = 4
    UNVERIFIED = 6
    INTERRUPTED = 130
