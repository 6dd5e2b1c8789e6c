"""Deploy event payload sent to the OpsLevel deploy webhook."""

from __future__ import annotations

from pydantic import BaseModel


class Deployer(BaseModel):
    id: str | None = None
    email: str | None = None
    name: str | None = None


class Commit(BaseModel):
    sha: str
    message: str | None = None
    branch: str | None = None


class DeployEvent(BaseModel):
    dedup_id: str
    service: str
    deployer: Deployer | None = None
    deployed_at: str
    environment: str
    description: str
    deploy_url: str
    deploy_number: str
    commit: Commit | None = None

    def to_payload(self) -> dict:
        """JSON-ready dict; unset sub-objects and sub-fields are left out entirely."""
        return self.model_dump(exclude_none=True)
