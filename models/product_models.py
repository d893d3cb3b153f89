"""
Data models for catalog products returned by the document search service.
"""

from typing import Optional
from pydantic import AliasChoices, Field, field_validator

from .base import ApiModel


class Product(ApiModel):
    """A candidate product. Read-only to the recommendation core."""
    id: str
    title: str = "Untitled"
    description: str = ""
    price: Optional[str] = None
    category: Optional[str] = None
    image: Optional[str] = None
    url: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    reviews: Optional[int] = Field(default=None, ge=0)
    score: float = Field(default=0.0, validation_alias=AliasChoices("score", "_score"))

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, value):
        # Catalogs store price either as display text ("$1,299.99") or a bare number.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class ImageResult(ApiModel):
    """Representative image chosen for a product."""
    url: str
    alt_text: str
    source: str = "placeholder"
