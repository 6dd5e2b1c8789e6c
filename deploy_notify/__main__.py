"""Entry point: python -m deploy_notify

Run as the last step of a CI job to publish a deploy event for it.

Usage:
    python -m deploy_notify --result SUCCESS                 # publish if configured
    python -m deploy_notify --result SUCCESS --config deploy-notify.yaml
    python -m deploy_notify --result SUCCESS --dry-run       # print payload, send nothing
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys

import yaml

from deploy_notify.builder import build_deploy_event, should_notify
from deploy_notify.client import DeliveryClient
from deploy_notify.config import load_publisher_config, settings
from deploy_notify.job import ContextUnavailableError, JobResult, JobRun
from deploy_notify.listener import on_completed
from deploy_notify.templating import TemplateCycleError


logger = logging.getLogger(__name__)


def _report_error(exc: Exception) -> None:
    message = f"{exc!r}. Could not publish deploy to OpsLevel."
    logger.error(message)
    print(f"Error :{message}")


async def main(
    result: str | None,
    config_path: str | None = None,
    webhook_url: str | None = None,
    dry_run: bool = False,
) -> None:
    # A broken config must not fail the job this step runs in
    try:
        publisher = load_publisher_config(config_path)
    except (OSError, ValueError, TypeError, yaml.YAMLError) as exc:
        _report_error(exc)
        return
    if webhook_url:
        publisher = publisher.model_copy(update={"webhook_url": webhook_url})

    run = JobRun.from_environ(result)

    if dry_run:
        if not should_notify(run.result):
            print(f"[DRY-RUN] Result {result} does not qualify, nothing would be sent.")
            return
        try:
            event = build_deploy_event(publisher, run)
        except (ContextUnavailableError, TemplateCycleError) as exc:
            _report_error(exc)
            return
        print(f"[DRY-RUN] Would publish to: {publisher.webhook_url}")
        print(json.dumps(event.to_payload(), indent=2))
        return

    async with DeliveryClient() as client:
        await on_completed(run, publisher, client, console=sys.stdout)


def cli():
    parser = argparse.ArgumentParser(
        description="Publish a deploy event for a completed CI job"
    )
    parser.add_argument(
        "--result",
        type=str.upper,
        choices=[r.value for r in JobResult],
        default=os.getenv("BUILD_RESULT") or None,
        help="Job result (defaults to $BUILD_RESULT); only SUCCESS and UNSTABLE publish",
    )
    parser.add_argument(
        "--config",
        default=settings.config_file,
        help="YAML file with the webhook URL and override templates",
    )
    parser.add_argument(
        "--webhook-url",
        default=None,
        help="Webhook URL, overriding the configured one",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Build and print the payload without sending it",
    )
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level.upper())
    asyncio.run(main(
        result=args.result,
        config_path=args.config,
        webhook_url=args.webhook_url,
        dry_run=args.dry_run,
    ))


if __name__ == "__main__":
    cli()
