"""Work item models mirroring the Azure DevOps Work Item Tracking payloads."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class WorkItemRelation(BaseModel):
    """A typed link from one work item to another resource."""

    rel: str
    url: str
    attributes: dict[str, Any] = Field(default_factory=dict)


class WorkItem(BaseModel):
    """A work item as returned by the store.

    Only ``id`` is required; the store assigns it and it never changes.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    rev: int | None = None
    fields: dict[str, Any] = Field(default_factory=dict)
    relations: list[WorkItemRelation] = Field(default_factory=list)
    url: str = ""

    @field_validator("fields", "relations", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return {} if info.field_name == "fields" else []
        return value

    def field(self, name: str, default: Any = None) -> Any:
        """Return a field value, or ``default`` when it is absent or null."""
        value = self.fields.get(name)
        return default if value is None else value


class Comment(BaseModel):
    """A discussion comment on a work item."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int | None = None
    work_item_id: int | None = Field(default=None, alias="workItemId")
    text: str = ""
    created_date: str | None = Field(default=None, alias="createdDate")

    @field_validator("text", mode="before")
    @classmethod
    def _text_none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class PatchOperation(BaseModel):
    """One JSON-patch instruction against a work item."""

    op: str = "add"
    path: str
    value: str | dict[str, Any]

    def to_wire(self) -> dict[str, Any]:
        """Render the operation the way the REST API expects it."""
        return {"op": self.op, "path": self.path, "value": self.value}
