"""Pydantic schemas for donations"""
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictInt
from typing import Optional


class SubscribeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Presence is checked by the service so a missing field is a 400, not a 422
    beneficiary_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("beneficiaryId", "orphanId", "beneficiary_id")
    )
    # No coercion: booleans and numeric strings are rejected
    amount: Optional[StrictInt] = None


class CancelRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    donation_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("donationId", "donation_id")
    )
