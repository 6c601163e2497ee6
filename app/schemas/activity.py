from pydantic import BaseModel, Field, TypeAdapter
from typing import Annotated, Literal, Optional, Union
from datetime import datetime

from app.schemas.base import CamelModel


class CreateDetails(BaseModel):
    kind: Literal["create"] = "create"
    createdTransaction: dict


class UpdateDetails(BaseModel):
    kind: Literal["update"] = "update"
    before: dict
    after: dict


class DeleteDetails(BaseModel):
    kind: Literal["delete"] = "delete"
    deletedTransaction: Optional[dict] = None
    deletedUser: Optional[dict] = None
    deletedTransactions: Optional[int] = None


class FreeformDetails(BaseModel):
    kind: Literal["freeform"] = "freeform"
    text: str


ActivityDetails = Annotated[
    Union[CreateDetails, UpdateDetails, DeleteDetails, FreeformDetails],
    Field(discriminator="kind"),
]

details_adapter = TypeAdapter(ActivityDetails)


class ActivityLogResponse(CamelModel):
    id: int
    user_id: int
    user_name: str
    action: str
    entity_type: str
    entity_id: int
    created_at: datetime
    details: ActivityDetails
