from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Service(BaseModel):
    """A treatment type with its fixed list of daily slots."""
    id: Optional[str] = None
    name: str
    slots: List[str] = Field(default_factory=list)


class Booking(BaseModel):
    """
    One slot of one service reserved by one patient on one date.
    JSON uses camelCase names, storage uses the snake_case field names.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    treatment: str
    date: str = ""  # opaque key, never parsed
    slot: Optional[str] = None
    patient: str
    patient_name: Optional[str] = Field(default=None, alias="patientName")
    paid: bool = False
    transaction_id: Optional[str] = Field(default=None, alias="transactionId")

    def to_record(self) -> dict:
        """Storage row without the generated id."""
        return self.model_dump(exclude={"id"})


class User(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: str
    name: Optional[str] = None
    role: Optional[str] = None
