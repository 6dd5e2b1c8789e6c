"""Tests for deploy event assembly."""

import json
import uuid
from unittest.mock import MagicMock

import pytest

from deploy_notify.builder import (
    build_deploy_event,
    first_present,
    resolve_description,
    should_notify,
)
from deploy_notify.config import PublisherConfig
from deploy_notify.event import Commit
from deploy_notify.job import ContextUnavailableError, JobResult, JobRun

FIXED_TIME = "2024-05-01T12:00:00Z"
FIXED_ID = "9ae54794-dfc5-4ac8-b1b5-78789f20f3f8"


def _publisher(**overrides):
    return PublisherConfig(webhook_url="https://example.com/hook", **overrides)


def _run(env=None, result=JobResult.SUCCESS):
    if env is None:
        env = {"BUILD_NUMBER": "42", "JOB_NAME": "app"}
    return JobRun(result=result, env=env)


def _build(publisher, run, message="Fix tax rate"):
    return build_deploy_event(
        publisher,
        run,
        commit_resolver=lambda env: message,
        clock=lambda: FIXED_TIME,
        id_factory=lambda: FIXED_ID,
    )


class TestShouldNotify:
    @pytest.mark.parametrize("result", [JobResult.SUCCESS, JobResult.UNSTABLE])
    def test_qualifying(self, result):
        assert should_notify(result) is True

    @pytest.mark.parametrize(
        "result", [JobResult.FAILURE, JobResult.ABORTED, JobResult.NOT_BUILT, None]
    )
    def test_not_qualifying(self, result):
        assert should_notify(result) is False


class TestFirstPresent:
    def test_returns_first_non_none(self):
        assert first_present(lambda: None, lambda: "b", lambda: "c") == "b"

    def test_empty_string_counts_as_present(self):
        assert first_present(lambda: "", lambda: "fallback") == ""

    def test_later_candidates_not_evaluated(self):
        later = MagicMock(return_value="never")
        assert first_present(lambda: "a", later) == "a"
        later.assert_not_called()

    def test_all_none(self):
        assert first_present(lambda: None) is None


class TestDefaults:
    def test_scenario_without_overrides(self):
        env = {"BUILD_NUMBER": "42", "JOB_NAME": "app", "GIT_COMMIT": "abc123"}
        payload = _build(_publisher(), _run(env)).to_payload()

        assert payload["deploy_number"] == "42"
        assert payload["service"] == "jenkins:app"
        assert payload["environment"] == "Production"
        assert payload["commit"]["sha"] == "abc123"
        assert "deployer" not in payload

    def test_deploy_url_prefers_absolute_url(self):
        env = {"BUILD_NUMBER": "7", "JOB_NAME": "app", "BUILD_URL": "https://ci.example.com/job/app/7/"}
        event = _build(_publisher(), _run(env))
        assert event.deploy_url == "https://ci.example.com/job/app/7/"

    def test_deploy_url_placeholder_when_location_unset(self):
        event = _build(_publisher(), _run())
        assert event.deploy_url == "http://jenkins-location-is-not-set.local/job/app/42/"

    def test_description_falls_back_to_commit_message(self):
        env = {"BUILD_NUMBER": "42", "JOB_NAME": "app", "GIT_COMMIT": "abc123"}
        event = _build(_publisher(), _run(env), message="Merge branch 'fix-tax-rate'")
        assert event.description == "Merge branch 'fix-tax-rate'"

    def test_description_default_template(self):
        event = _build(_publisher(), _run())
        assert event.description == "Jenkins Deploy #42"

    def test_description_default_when_commit_has_no_message(self):
        env = {"BUILD_NUMBER": "42", "JOB_NAME": "app", "GIT_COMMIT": "abc123"}
        event = _build(_publisher(), _run(env), message=None)
        assert event.description == "Jenkins Deploy #42"

    def test_deployed_at_is_utc_iso_without_fraction(self):
        event = build_deploy_event(_publisher(), _run(), commit_resolver=lambda env: None)
        assert event.deployed_at.endswith("Z")
        assert len(event.deployed_at) == len("2024-05-01T12:00:00Z")


class TestOverrides:
    def test_environment_template(self):
        event = _build(_publisher(environment="${JOB_NAME}-staging"), _run())
        assert event.environment == "app-staging"

    def test_overrides_win_over_fallbacks(self):
        env = {
            "BUILD_NUMBER": "42",
            "JOB_NAME": "app",
            "GIT_COMMIT": "abc123",
            "BUILD_URL": "https://ci.example.com/job/app/42/",
        }
        publisher = _publisher(
            deploy_url="https://deploys.example.com/${BUILD_NUMBER}",
            environment="Staging",
            service_alias="shopping_cart",
            description="Deploy #${BUILD_NUMBER} of ${JOB_NAME}",
        )
        event = _build(publisher, _run(env))

        assert event.deploy_url == "https://deploys.example.com/42"
        assert event.environment == "Staging"
        assert event.service == "shopping_cart"
        assert event.description == "Deploy #42 of app"

    def test_empty_override_still_wins(self):
        event = _build(_publisher(environment="", description=""), _run())
        assert event.environment == ""
        assert event.description == ""

    def test_deploy_number_not_overridable(self):
        event = _build(_publisher(description="${BUILD_NUMBER}"), _run({"BUILD_NUMBER": "${X}", "X": "1"}))
        assert event.deploy_number == "${X}"


class TestSubObjects:
    def test_no_commit_without_hash(self):
        resolver = MagicMock(return_value="subject")
        event = build_deploy_event(_publisher(), _run(), commit_resolver=resolver)
        assert "commit" not in event.to_payload()
        resolver.assert_not_called()

    def test_commit_with_branch_and_message(self):
        env = {"BUILD_NUMBER": "1", "JOB_NAME": "app", "GIT_COMMIT": "abc123", "GIT_BRANCH": "origin/main"}
        payload = _build(_publisher(), _run(env), message="subject").to_payload()
        assert payload["commit"] == {"sha": "abc123", "branch": "origin/main", "message": "subject"}

    def test_commit_omits_missing_branch_and_message(self):
        env = {"BUILD_NUMBER": "1", "JOB_NAME": "app", "GIT_COMMIT": "abc123"}
        payload = _build(_publisher(), _run(env), message=None).to_payload()
        assert payload["commit"] == {"sha": "abc123"}

    def test_deployer_partial(self):
        payload = _build(_publisher(deployer_email="${JOB_NAME}@example.com"), _run()).to_payload()
        assert payload["deployer"] == {"email": "app@example.com"}

    def test_deployer_all_fields(self):
        publisher = _publisher(deployer_id="u-1", deployer_name="Michael Scott", deployer_email="m@example.com")
        payload = _build(publisher, _run()).to_payload()
        assert payload["deployer"] == {"id": "u-1", "name": "Michael Scott", "email": "m@example.com"}

    def test_no_deployer_without_overrides(self):
        assert "deployer" not in _build(_publisher(), _run()).to_payload()


class TestIdentity:
    def test_dedup_id_is_fresh_uuid(self):
        run = _run()
        first = build_deploy_event(_publisher(), run, commit_resolver=lambda env: None)
        second = build_deploy_event(_publisher(), run, commit_resolver=lambda env: None)
        assert str(uuid.UUID(first.dedup_id)) == first.dedup_id
        assert first.dedup_id != second.dedup_id

    def test_serialization_stable_with_fixed_clock_and_id(self):
        env = {"BUILD_NUMBER": "42", "JOB_NAME": "app", "GIT_COMMIT": "abc123"}
        publisher = _publisher(deployer_name="${JOB_NAME} bot")
        first = json.dumps(_build(publisher, _run(env)).to_payload())
        second = json.dumps(_build(publisher, _run(env)).to_payload())
        assert first == second


class TestContext:
    def test_unreadable_environment_raises(self):
        with pytest.raises(ContextUnavailableError):
            _build(_publisher(), JobRun(result=JobResult.SUCCESS, env=None))

    def test_missing_build_number_raises(self):
        with pytest.raises(ContextUnavailableError):
            _build(_publisher(), _run({"JOB_NAME": "app"}))


class TestResolveDescription:
    def test_commit_without_message_skipped(self):
        description = resolve_description(_publisher(), {"BUILD_NUMBER": "3"}, Commit(sha="abc"))
        assert description == "Jenkins Deploy #3"
