"""Request bodies for the classification endpoints."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from triage.models.issue import Issue, RepositoryContext


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ClassifyRequest(_CamelModel):
    issue: Issue
    repository_context: RepositoryContext | None = None


class BatchClassifyRequest(_CamelModel):
    issues: list[Issue] = Field(default_factory=list, max_length=1000)
    repository_context: RepositoryContext | None = None
    batch_size: int | None = Field(default=None, ge=1, le=1000)
    parallelism: int | None = Field(default=None, ge=1, le=10)
