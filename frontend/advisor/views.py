from __future__ import annotations

import json
from typing import List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .models import ChatMessage, ExchangeStatus, Product, ProductSummary
from .state import AdvisorSession

PRODUCTS_MARKER = "PRODUCTS_JSON:"

PLACEHOLDER_TEXT = "Select a category to view products"
EMPTY_CATEGORY_TEXT = "No products found in this category"
EMPTY_SELECTION_TEXT = "No products selected yet"


class ProductCard(BaseModel):
    product: Product
    selected: bool


class CatalogView(BaseModel):
    kind: Literal["placeholder", "empty", "products"]
    message: Optional[str] = None
    cards: List[ProductCard] = Field(default_factory=list)


class SelectedPanel(BaseModel):
    products: List[Product] = Field(default_factory=list)
    empty_message: Optional[str] = None
    can_generate: bool = False


class TranscriptEntry(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class TranscriptView(BaseModel):
    entries: List[TranscriptEntry] = Field(default_factory=list)
    product_context: List[ProductSummary] = Field(default_factory=list)
    awaiting_response: bool = False


def decode_product_context(message: ChatMessage) -> Optional[List[ProductSummary]]:
    """Parse a ``PRODUCTS_JSON:`` system message back into product summaries."""
    if message.role != "system" or not message.content.startswith(PRODUCTS_MARKER):
        return None
    try:
        items = json.loads(message.content[len(PRODUCTS_MARKER) :])
        return [ProductSummary.model_validate(item) for item in items]
    except (ValueError, TypeError, PydanticValidationError):
        return None


def catalog_view(session: AdvisorSession) -> CatalogView:
    if session.catalog_error and not session.catalog:
        return CatalogView(kind="placeholder", message=session.catalog_error)
    if session.category is None:
        return CatalogView(kind="placeholder", message=PLACEHOLDER_TEXT)

    products = session.filter_by_category(session.category)
    if not products:
        return CatalogView(kind="empty", message=EMPTY_CATEGORY_TEXT)
    return CatalogView(
        kind="products",
        cards=[ProductCard(product=p, selected=session.is_selected(p.id)) for p in products],
    )


def selected_panel(session: AdvisorSession) -> SelectedPanel:
    products = session.selected_products()
    if not products:
        return SelectedPanel(empty_message=EMPTY_SELECTION_TEXT)
    return SelectedPanel(products=products, can_generate=True)


def transcript_view(session: AdvisorSession) -> TranscriptView:
    entries: List[TranscriptEntry] = []
    context: List[ProductSummary] = []
    for message in session.transcript:
        if message.role == "system":
            decoded = decode_product_context(message)
            if decoded is not None:
                context = decoded
            continue
        entries.append(TranscriptEntry(role=message.role, content=message.content))
    return TranscriptView(
        entries=entries,
        product_context=context,
        awaiting_response=session.status is ExchangeStatus.AWAITING_RESPONSE,
    )
