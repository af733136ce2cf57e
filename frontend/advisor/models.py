from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Product(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    name: str
    brand: str
    category: str
    description: str = ""
    image: str = ""

    def summary(self) -> "ProductSummary":
        return ProductSummary(
            id=self.id,
            name=self.name,
            brand=self.brand,
            category=self.category,
            description=self.description,
        )


class ProductSummary(BaseModel):
    """The subset of a product sent to the relay (no image URL)."""

    id: int
    name: str
    brand: str
    category: str
    description: str


class Catalog(BaseModel):
    products: List[Product] = Field(default_factory=list)


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant", "system"]
    content: str


class RoutineRequest(BaseModel):
    messages: List[ChatMessage]
    selected: List[ProductSummary] = Field(default_factory=list)
    model: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None

    def to_json(self) -> Dict[str, Any]:
        """Wire body for the relay; unset overrides are left out."""
        return self.model_dump(exclude_none=True)


class ExchangeStatus(str, Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
