from __future__ import annotations

from pydantic import AliasChoices, Field

from app.schemas.common import Money, UpstreamModel


class Feature(UpstreamModel):
    """Feature as returned by the feature service (also embedded in plans)."""

    featureId: str | None = Field(
        None, validation_alias=AliasChoices("featureId", "id")
    )
    code: str | None = None
    name: str = ""
    description: str | None = None
    unit: str | None = None
    usageLimit: int | None = None
    pricePerUnit: Money | None = None
    defaultIncludedUnits: int | None = None
    isActive: bool = True


class FeatureRequest(UpstreamModel):
    """Schema for creating or replacing a feature."""

    code: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    unit: str | None = None
    usageLimit: int | None = Field(None, ge=0)
    pricePerUnit: Money = Field(..., ge=0)
    defaultIncludedUnits: int | None = Field(None, ge=0)
    isActive: bool = True

