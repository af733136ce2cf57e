from __future__ import annotations

import json
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.errors import ValidationError

PRODUCTS_MARKER = "PRODUCTS_JSON:"


class RelayRequest(BaseModel):
    """
    Loosely-typed chat request accepted by the relay.

    Field coercion mirrors what browsers tend to send: a missing or
    malformed ``messages`` becomes an empty list and a non-numeric
    ``temperature`` falls back to the server default.
    """

    model_config = ConfigDict(extra="ignore")

    messages: List[Any] = Field(default_factory=list)
    selected: Any = None
    model: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None

    @classmethod
    def from_body(cls, body: Any) -> "RelayRequest":
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")

        messages = body.get("messages")
        temperature = body.get("temperature")
        if isinstance(temperature, bool) or not isinstance(temperature, (int, float)):
            temperature = None
        model = body.get("model")
        max_tokens = body.get("max_tokens")

        return cls(
            messages=list(messages) if isinstance(messages, list) else [],
            selected=body.get("selected"),
            model=model if isinstance(model, str) and model else None,
            max_tokens=(
                max_tokens
                if isinstance(max_tokens, int) and not isinstance(max_tokens, bool) and max_tokens > 0
                else None
            ),
            temperature=temperature,
        )

    def upstream_messages(self) -> List[Any]:
        """Messages to forward, with the product context prepended when given."""
        messages = list(self.messages)
        if self.selected:
            try:
                products_json = json.dumps(
                    self.selected, separators=(",", ":"), ensure_ascii=False
                )
            except (TypeError, ValueError) as exc:
                raise ValidationError(f"'selected' could not be serialized: {exc}") from exc
            messages.insert(0, {"role": "system", "content": PRODUCTS_MARKER + products_json})
        return messages


class RelayResponse(BaseModel):
    success: bool = True
    result: Optional[str] = None
    raw: Any = None


class RelayErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
