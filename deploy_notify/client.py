"""Single-shot delivery of deploy events to the webhook."""

from __future__ import annotations

import json
import logging

import httpx

from deploy_notify import __version__
from deploy_notify.config import settings
from deploy_notify.event import DeployEvent

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json; charset=utf-8"


class DeliveryClient:
    """Posts deploy events to a webhook. No retries: one attempt per event.

    Construct once and share across events; the underlying AsyncClient is
    safe for concurrent use.
    """

    def __init__(self, agent: str | None = None, http_client: httpx.AsyncClient | None = None):
        self.agent = agent or f"{settings.agent_name}-{__version__}"
        self._client = http_client or httpx.AsyncClient()

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self) -> "DeliveryClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def build_url(self, webhook_url: str) -> httpx.URL:
        """Webhook URL with the agent query parameter appended."""
        return httpx.URL(webhook_url).copy_merge_params({"agent": self.agent})

    async def publish(self, webhook_url: str, event: DeployEvent) -> str | None:
        """POST the event and return the response body, if any.

        Any HTTP status counts as delivered. Transport errors and malformed
        URLs propagate to the caller.
        """
        body = json.dumps(event.to_payload())
        logger.info("Sending OpsLevel Integration payload:\n%s", body)

        try:
            url = self.build_url(webhook_url)
            resp = await self._client.post(
                url,
                content=body.encode("utf-8"),
                headers={"Content-Type": JSON_CONTENT_TYPE},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.info("Invocation of webhook %s failed: %s", webhook_url, exc)
            raise

        logger.info("Invocation of webhook %s successful (%d)", url, resp.status_code)
        return resp.text or None
