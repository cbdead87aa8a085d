"""Issue data models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class RepositoryContext(BaseModel):
    """Repository an issue belongs to; selects repository-specific config."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    owner: str
    repo: str
    branch: str | None = None

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"


class Issue(BaseModel):
    """An issue-tracker item as consumed by the classification engine."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: int
    number: int
    title: str
    body: str | None = None
    state: Literal["open", "closed"] = "open"
    created_at: datetime
    updated_at: datetime
    labels: list[str] = []
    html_url: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _from_github_payload(cls, data: dict) -> dict:
        """Accept raw GitHub REST payloads (label objects, snake_case keys)."""
        if isinstance(data, dict) and "labels" in data:
            labels = data.get("labels") or []
            data = {
                **data,
                "labels": [
                    label.get("name", "") if isinstance(label, dict) else label
                    for label in labels
                ],
            }
        return data

    @property
    def lowered_labels(self) -> list[str]:
        return [label.lower() for label in self.labels]
