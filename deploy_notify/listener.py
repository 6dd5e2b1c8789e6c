"""Job-completion handler: build and publish the deploy event.

Failures are logged and written to the build console but never raised.
The notification is a side channel and must not change the job's result.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from deploy_notify.builder import build_deploy_event, should_notify
from deploy_notify.client import DeliveryClient
from deploy_notify.config import PublisherConfig
from deploy_notify.event import DeployEvent
from deploy_notify.job import JobRun

logger = logging.getLogger(__name__)


async def on_completed(
    run: JobRun,
    publisher: PublisherConfig | None,
    client: DeliveryClient,
    console: TextIO = sys.stdout,
    **builder_kwargs,
) -> DeployEvent | None:
    """Publish a deploy event for a successful run.

    Returns the event that was sent, or None when nothing was published.
    """
    if publisher is None or not publisher.webhook_url:
        logger.debug("No webhook configured, skipping deploy notification")
        return None

    if not should_notify(run.result):
        logger.debug("Job result %s does not qualify for a deploy notification", run.result)
        return None

    try:
        event = build_deploy_event(publisher, run, **builder_kwargs)
        console.write(f"Publishing deploy to OpsLevel via: {publisher.webhook_url}\n")
        response = await client.publish(publisher.webhook_url, event)
        if response is not None:
            message = f"Response: {response}\n"
            console.write(message)
            logger.info(message.rstrip())
        return event
    except Exception as exc:
        message = f"{exc!r}. Could not publish deploy to OpsLevel."
        logger.error(message)
        console.write(f"Error :{message}\n")
        return None
