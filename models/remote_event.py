from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.base import EventState


class RemoteEvent(BaseModel):
    """
    Transient reference to an event on the Universe side.

    Built from a mutation payload's ``event`` node plus the payload's
    ``clientMutationId``; only used to derive the URL and persist status.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    title: Optional[str] = None
    slug: Optional[str] = None
    state: Optional[str] = None
    privacy: Optional[str] = None
    client_mutation_id: Optional[str] = Field(None, alias="clientMutationId")

    @field_validator("id", mode="before")
    @classmethod
    def id_to_string(cls, v):
        return v if v is None or isinstance(v, str) else str(v)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "RemoteEvent":
        """Merge ``payload["event"]`` with the echoed ``clientMutationId``."""
        event = dict(payload.get("event") or {})
        event["clientMutationId"] = payload.get("clientMutationId")
        return cls.model_validate(event)

    @property
    def is_posted(self) -> bool:
        return (self.state or "").upper() == EventState.POSTED.value
