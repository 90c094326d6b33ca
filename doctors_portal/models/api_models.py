from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from doctors_portal.models.db_models import Booking

# --- Request Models ---

class PaymentUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transaction_id: str = Field(..., min_length=1, alias="transactionId")


class UserUpsertRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None


# --- Response Models ---

class InsertResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    acknowledged: bool = True
    inserted_id: str = Field(..., alias="insertedId")


class BookingCreateResponse(BaseModel):
    """Duplicate -> success False + booking, created -> success True + result."""
    success: bool
    booking: Optional[Booking] = None
    result: Optional[InsertResult] = None


class PaymentUpdateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    acknowledged: bool = True
    modified_count: int = Field(1, alias="modifiedCount")
    booking: Booking


class UpsertResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    acknowledged: bool = True
    upserted: bool = False
    matched_count: int = Field(0, alias="matchedCount")


class UserUpsertResponse(BaseModel):
    result: UpsertResult
    token: str
