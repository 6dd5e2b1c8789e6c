"""The completed CI job as seen by the notifier."""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from typing import Mapping


class JobResult(str, enum.Enum):
    SUCCESS = "SUCCESS"
    UNSTABLE = "UNSTABLE"
    FAILURE = "FAILURE"
    NOT_BUILT = "NOT_BUILT"
    ABORTED = "ABORTED"


class ContextUnavailableError(Exception):
    """Raised when the job's environment context cannot be read."""
    pass


@dataclass
class JobRun:
    result: JobResult | None
    env: Mapping[str, str] | None

    def environment(self) -> Mapping[str, str]:
        if self.env is None:
            raise ContextUnavailableError("job environment is not available")
        if "BUILD_NUMBER" not in self.env:
            raise ContextUnavailableError("BUILD_NUMBER is not set in the job environment")
        return self.env

    @property
    def absolute_url(self) -> str | None:
        """Full job URL; only known when the CI location is configured."""
        return (self.env or {}).get("BUILD_URL") or None

    @property
    def relative_url(self) -> str:
        env = self.env or {}
        return f"job/{env.get('JOB_NAME', '')}/{env.get('BUILD_NUMBER', '')}/"

    @classmethod
    def from_environ(cls, result: str | None, environ: Mapping[str, str] | None = None) -> "JobRun":
        """Build a JobRun from the CI process environment."""
        env = dict(os.environ if environ is None else environ)
        # Unknown results are treated like no result at all
        job_result = JobResult.__members__.get((result or "").upper())
        return cls(result=job_result, env=env)
