"""Shared building blocks for schemas mirroring the remote services."""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer

# Rupee amounts are Decimal internally and plain JSON numbers on the wire
Money = Annotated[
    Decimal, PlainSerializer(float, return_type=float, when_used="json")
]


class UpstreamModel(BaseModel):
    """Base for payloads exchanged with the Java services (camelCase, numeric ids)."""

    model_config = ConfigDict(
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )
