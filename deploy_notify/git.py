"""Recover commit metadata by running git in the job workspace."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Callable, Mapping

from deploy_notify.config import settings

logger = logging.getLogger(__name__)

# git exits nonzero on some partial failures yet still prints the subject
# line, so stdout is kept after a logged failure.
USE_OUTPUT_AFTER_FAILURE = True


@dataclass(frozen=True)
class CommandResult:
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def run_command(args: list[str], cwd: str | None = None) -> CommandResult | None:
    """Run args to completion and capture both streams.

    Returns None when the process cannot be started at all.
    """
    try:
        proc = subprocess.run(
            args,
            cwd=cwd,
            capture_output=True,
            text=True,
            errors="replace",
            check=False,
        )
    except OSError as exc:
        logger.error("Could not run %s in %s: %s", " ".join(args), cwd, exc)
        return None
    return CommandResult(exit_code=proc.returncode, stdout=proc.stdout, stderr=proc.stderr)


def resolve_commit_message(
    context: Mapping[str, str],
    runner: Callable[[list[str], str | None], CommandResult | None] = run_command,
) -> str | None:
    """Return the subject line of the checked-out commit, or None."""
    if "GIT_COMMIT" not in context:
        return None

    args = [settings.git_executable, "show", "--pretty=%s"]
    result = runner(args, context.get("WORKSPACE"))
    if result is None:
        return None

    if not result.ok:
        logger.warning(
            "Failed to execute command: %s. Exit code: %d. Stderr: %s",
            " ".join(args), result.exit_code, result.stderr.strip(),
        )
        if not USE_OUTPUT_AFTER_FAILURE:
            return None

    subject = result.stdout.splitlines()[0] if result.stdout else ""
    return subject or None
