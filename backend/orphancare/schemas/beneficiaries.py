"""Pydantic schemas for beneficiary (orphan) profiles"""
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Optional

# current_donors is not accepted here: the daily reconciliation job is its only writer


class BeneficiaryBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    age: Optional[int] = Field(None, ge=0)
    gender: Optional[str] = Field(None, max_length=20)
    location: Optional[str] = Field(None, max_length=255)
    story: Optional[str] = None
    photo_url: Optional[str] = Field(
        None, max_length=1024, validation_alias=AliasChoices("photoUrl", "photo_url")
    )
    monthly_support: Optional[int] = Field(
        None, ge=0, validation_alias=AliasChoices("monthlySupport", "monthly_support")
    )
    status: Optional[str] = Field(None, max_length=20)
    category_id: Optional[str] = Field(
        None, max_length=64, validation_alias=AliasChoices("categoryId", "category_id")
    )


class BeneficiaryCreate(BeneficiaryBase):
    name: str = Field(..., min_length=1, max_length=255)


class BeneficiaryUpdate(BeneficiaryBase):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
