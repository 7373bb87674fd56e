"""
Slab catalog schemas.
"""
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime


class WeightSlabCreate(BaseModel):
    name: str = Field(min_length=1)
    min_weight_grams: int = Field(ge=0)
    max_weight_grams: int = Field(gt=0)


class WeightSlabUpdate(WeightSlabCreate):
    is_active: bool = True


class WeightSlabResponse(BaseModel):
    id: UUID
    name: str
    min_weight_grams: int
    max_weight_grams: int
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class EnumerationUpsert(BaseModel):
    code: str = Field(min_length=1)
    title: str = Field(min_length=1)
    is_active: bool = True


class EnumerationResponse(BaseModel):
    id: UUID
    code: str
    title: str
    is_active: bool

    class Config:
        from_attributes = True
