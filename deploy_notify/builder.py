"""Assemble a DeployEvent from the publisher config and the completed job.

Each overridable field is resolved by an ordered chain of candidates: the
templated override first, then the fallbacks in order. The first candidate
that yields a non-None value wins, so an override configured as "" still
beats every fallback.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Mapping

from deploy_notify.config import PublisherConfig, settings
from deploy_notify.event import Commit, DeployEvent, Deployer
from deploy_notify.git import resolve_commit_message
from deploy_notify.job import JobResult, JobRun
from deploy_notify.templating import substitute

logger = logging.getLogger(__name__)

QUALIFYING_RESULTS = {
    JobResult.SUCCESS,
    # UNSTABLE can still be a good deploy depending on how the pipeline is set up
    JobResult.UNSTABLE,
}

DEFAULT_ENVIRONMENT = "Production"
DEFAULT_DESCRIPTION = "Jenkins Deploy #${BUILD_NUMBER}"
# Kubernetes-style prefix for the service identifier
SERVICE_PREFIX = "jenkins:"

Candidate = Callable[[], "str | None"]


def should_notify(result: JobResult | None) -> bool:
    return result in QUALIFYING_RESULTS


def first_present(*candidates: Candidate) -> str | None:
    """Evaluate candidates in order and return the first non-None value."""
    for candidate in candidates:
        value = candidate()
        if value is not None:
            return value
    return None


def _now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _new_dedup_id() -> str:
    return str(uuid.uuid4())


def resolve_deploy_url(publisher: PublisherConfig, run: JobRun, env: Mapping[str, str]) -> str:
    return first_present(
        lambda: substitute(publisher.deploy_url, env),
        lambda: run.absolute_url,
        lambda: settings.placeholder_host + run.relative_url,
    )


def resolve_environment(publisher: PublisherConfig, env: Mapping[str, str]) -> str:
    return first_present(
        lambda: substitute(publisher.environment, env),
        lambda: DEFAULT_ENVIRONMENT,
    )


def resolve_service(publisher: PublisherConfig, env: Mapping[str, str]) -> str:
    return first_present(
        lambda: substitute(publisher.service_alias, env),
        lambda: SERVICE_PREFIX + env.get("JOB_NAME", ""),
    )


def resolve_description(
    publisher: PublisherConfig,
    env: Mapping[str, str],
    commit: Commit | None,
) -> str:
    return first_present(
        lambda: substitute(publisher.description, env),
        lambda: commit.message if commit is not None else None,
        lambda: substitute(DEFAULT_DESCRIPTION, env),
    )


def build_deployer(publisher: PublisherConfig, env: Mapping[str, str]) -> Deployer | None:
    """Deployer details are only sent when at least one of them is configured."""
    if publisher.deployer_id is None and publisher.deployer_name is None and publisher.deployer_email is None:
        return None
    return Deployer(
        id=substitute(publisher.deployer_id, env),
        name=substitute(publisher.deployer_name, env),
        email=substitute(publisher.deployer_email, env),
    )


def build_commit(
    env: Mapping[str, str],
    commit_resolver: Callable[[Mapping[str, str]], str | None] = resolve_commit_message,
) -> Commit | None:
    commit_hash = env.get("GIT_COMMIT")
    if commit_hash is None:
        # This build doesn't use git
        return None
    return Commit(
        sha=commit_hash,
        branch=env.get("GIT_BRANCH"),
        message=commit_resolver(env),
    )


def build_deploy_event(
    publisher: PublisherConfig,
    run: JobRun,
    *,
    commit_resolver: Callable[[Mapping[str, str]], str | None] = resolve_commit_message,
    clock: Callable[[], str] = _now_iso,
    id_factory: Callable[[], str] = _new_dedup_id,
) -> DeployEvent:
    """Resolve every field of the deploy event for a completed job.

    Raises ContextUnavailableError if the job environment cannot be read;
    missing optional data only ever falls back or is omitted.
    """
    env = run.environment()
    for key in sorted(env):
        logger.debug("%s: %s", key, env[key])

    commit = build_commit(env, commit_resolver)

    return DeployEvent(
        dedup_id=id_factory(),
        # Deploy number always comes from the CI system, never overridden
        deploy_number=env["BUILD_NUMBER"],
        deploy_url=resolve_deploy_url(publisher, run, env),
        deployed_at=clock(),
        description=resolve_description(publisher, env, commit),
        environment=resolve_environment(publisher, env),
        service=resolve_service(publisher, env),
        deployer=build_deployer(publisher, env),
        commit=commit,
    )
