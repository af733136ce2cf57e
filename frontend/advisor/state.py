from __future__ import annotations

import logging
import sqlite3
from typing import Callable, Dict, List, Optional

from .catalog import fetch_catalog
from .config import ClientSettings
from .errors import (
    AdvisorError,
    CatalogLoadError,
    ConfigurationError,
    EmptySelectionError,
    PersistenceError,
    TransportError,
)
from .models import ChatMessage, ExchangeStatus, Product, RoutineRequest
from .relay_client import post_to_relay
from .storage import (
    SELECTION_KEY,
    TRANSCRIPT_KEY,
    LocalStore,
    load_selection,
    load_transcript,
    save_selection,
    save_transcript,
)

logger = logging.getLogger(__name__)

ADVISOR_SYSTEM_PROMPT = (
    "You are a friendly product advisor. Help the user build routines with the "
    "products they selected and answer follow-up questions about those products, "
    "skincare, haircare, makeup and fragrance. Politely decline unrelated topics."
)

ROUTINE_INSTRUCTION = (
    "Create a step-by-step usage routine using only the selected products. "
    "Say when (morning or evening) and in what order to use each one, and add "
    "a short tip for each step."
)

EMPTY_RESULT_TEXT = "I didn't get a routine back that time. Please try again."

# Client-generated assistant bubbles; shown to the user, never sent upstream.
NOTICE_TEXTS = frozenset(
    cls.user_message
    for cls in (
        AdvisorError,
        CatalogLoadError,
        ConfigurationError,
        EmptySelectionError,
        PersistenceError,
        TransportError,
    )
) | {EMPTY_RESULT_TEXT}

Sender = Callable[[Optional[str], RoutineRequest, float], Optional[str]]
CatalogFetcher = Callable[[str, float], List[Product]]


def is_notice(message: ChatMessage) -> bool:
    return message.role == "assistant" and message.content in NOTICE_TEXTS


class AdvisorSession:
    """
    Owns the catalog, the selection set and the chat transcript.

    Views and the dispatcher receive the session explicitly; nothing here
    touches a UI toolkit.
    """

    def __init__(
        self,
        settings: ClientSettings,
        store: LocalStore,
        sender: Sender = post_to_relay,
        catalog_fetcher: CatalogFetcher = fetch_catalog,
    ) -> None:
        self.settings = settings
        self.store = store
        self._send = sender
        self._fetch_catalog = catalog_fetcher

        self.catalog: List[Product] = []
        self.catalog_error: Optional[str] = None
        self.category: Optional[str] = None
        self._selected: Dict[int, None] = {}
        self.transcript: List[ChatMessage] = []

        self.status = ExchangeStatus.IDLE
        self._latest_seq = 0

    # Catalog

    def load_catalog(self) -> List[Product]:
        """
        Load the catalog from ``settings.catalog_source``.

        On failure the previously loaded catalog is kept and
        ``catalog_error`` is set for the placeholder view.
        """
        try:
            products = self._fetch_catalog(
                self.settings.catalog_source,
                self.settings.request_timeout_seconds,
            )
        except CatalogLoadError as exc:
            self.catalog_error = exc.user_message
            raise
        self.catalog = products
        self.catalog_error = None
        logger.info("Catalog loaded", extra={"product_count": len(products)})
        return products

    def categories(self) -> List[str]:
        return list(dict.fromkeys(p.category for p in self.catalog))

    def filter_by_category(self, category: str) -> List[Product]:
        return [p for p in self.catalog if p.category == category]

    def product_by_id(self, product_id: int) -> Optional[Product]:
        for product in self.catalog:
            if product.id == product_id:
                return product
        return None

    # Selection

    @property
    def selected_ids(self) -> List[int]:
        return list(self._selected)

    def is_selected(self, product_id: int) -> bool:
        return product_id in self._selected

    def selected_products(self) -> List[Product]:
        """Selected products in selection order; ids missing from the catalog are dropped."""
        self._drop_stale_selection()
        by_id = {p.id: p for p in self.catalog}
        return [by_id[pid] for pid in self._selected if pid in by_id]

    def toggle_selection(self, product_id: int) -> bool:
        """Flip membership; returns the new membership. Unknown ids are ignored."""
        if self.product_by_id(product_id) is None:
            logger.debug("Ignoring toggle for unknown product", extra={"product_id": product_id})
            return False
        if product_id in self._selected:
            del self._selected[product_id]
        else:
            self._selected[product_id] = None
        self._persist_selection()
        return product_id in self._selected

    def remove_selection(self, product_id: int) -> None:
        if product_id in self._selected:
            del self._selected[product_id]
            self._persist_selection()

    def clear_selections(self) -> None:
        self._selected.clear()
        self._persist_selection()

    # Chat

    def build_routine_request(self) -> RoutineRequest:
        selected = self.selected_products()
        if not selected:
            raise EmptySelectionError("no products selected")
        messages = self._conversation() + [ChatMessage(role="user", content=ROUTINE_INSTRUCTION)]
        return self._request(messages, selected)

    def build_chat_request(self) -> RoutineRequest:
        return self._request(self._conversation(), self.selected_products())

    def send_chat(self, payload: RoutineRequest) -> Optional[ChatMessage]:
        """
        Send ``payload`` to the relay and append the reply.

        Raises ``ConfigurationError`` or ``TransportError``; the exchange
        returns to idle either way. Returns ``None`` when a newer exchange
        was started before this reply arrived.
        """
        seq = self.begin_exchange()
        try:
            result = self._send(
                self.settings.relay_url,
                payload,
                self.settings.request_timeout_seconds,
            )
        except AdvisorError:
            self._end_exchange(seq)
            raise
        return self.complete_exchange(seq, result or EMPTY_RESULT_TEXT)

    def generate_routine(self) -> Optional[ChatMessage]:
        """The "generate routine" flow; every failure becomes one assistant message."""
        seq = self._latest_seq
        try:
            return self.send_chat(self.build_routine_request())
        except AdvisorError as exc:
            return self._report(exc, seq)

    def submit_message(self, text: str) -> Optional[ChatMessage]:
        text = text.strip()
        if not text:
            return None
        self.transcript.append(ChatMessage(role="user", content=text))
        self._persist_transcript()
        seq = self._latest_seq
        try:
            return self.send_chat(self.build_chat_request())
        except AdvisorError as exc:
            return self._report(exc, seq)

    def reset_conversation(self) -> None:
        self.transcript.clear()
        self._persist_transcript()

    # Exchange sequencing

    def begin_exchange(self) -> int:
        self._latest_seq += 1
        self.status = ExchangeStatus.AWAITING_RESPONSE
        return self._latest_seq

    def complete_exchange(self, seq: int, text: str) -> Optional[ChatMessage]:
        """Append an assistant reply unless a newer exchange superseded ``seq``."""
        if seq < self._latest_seq:
            logger.info(
                "Dropping stale relay response",
                extra={"seq": seq, "latest_seq": self._latest_seq},
            )
            return None
        message = ChatMessage(role="assistant", content=text)
        self.transcript.append(message)
        self._persist_transcript()
        self._end_exchange(seq)
        return message

    def _end_exchange(self, seq: int) -> None:
        if seq == self._latest_seq:
            self.status = ExchangeStatus.IDLE

    # Session restore

    def restore_session(self) -> None:
        try:
            self.load_catalog()
        except CatalogLoadError as exc:
            logger.warning("Starting without a catalog", extra={"error": exc.detail})

        try:
            self._selected = dict.fromkeys(load_selection(self.store))
        except PersistenceError as exc:
            logger.warning("Resetting corrupt selection", extra={"error": exc.detail})
            self._selected = {}
            self._discard(SELECTION_KEY)
        self._drop_stale_selection()

        try:
            self.transcript = load_transcript(self.store)
        except PersistenceError as exc:
            logger.warning("Resetting corrupt chat history", extra={"error": exc.detail})
            self.transcript = []
            self._discard(TRANSCRIPT_KEY)

        logger.info(
            "Session restored",
            extra={"selected": len(self._selected), "messages": len(self.transcript)},
        )

    # Helpers

    def _conversation(self) -> List[ChatMessage]:
        history = [
            m for m in self.transcript if m.role != "system" and not is_notice(m)
        ]
        return [ChatMessage(role="system", content=ADVISOR_SYSTEM_PROMPT)] + history

    def _request(self, messages: List[ChatMessage], selected: List[Product]) -> RoutineRequest:
        return RoutineRequest(
            messages=messages,
            selected=[p.summary() for p in selected],
            model=self.settings.model,
            max_tokens=self.settings.max_tokens,
            temperature=self.settings.temperature,
        )

    def _report(self, exc: AdvisorError, seq_before: int) -> Optional[ChatMessage]:
        logger.warning(
            "Chat exchange failed",
            extra={"error_type": type(exc).__name__, "error": exc.detail},
        )
        # Errors raised before send_chat started an exchange get their own slot.
        seq = self._latest_seq if self._latest_seq > seq_before else self.begin_exchange()
        return self.complete_exchange(seq, exc.user_message)

    def _drop_stale_selection(self) -> None:
        # Only prune against a loaded catalog; without one every id is unknown.
        if not self.catalog:
            return
        known = {p.id for p in self.catalog}
        stale = [pid for pid in self._selected if pid not in known]
        if not stale:
            return
        for pid in stale:
            del self._selected[pid]
        logger.info("Dropped stale selected ids", extra={"product_ids": stale})
        self._persist_selection()

    def _persist_selection(self) -> None:
        try:
            save_selection(self.store, self._selected)
        except sqlite3.Error as exc:
            logger.error("Could not persist selection", extra={"error": str(exc)})

    def _persist_transcript(self) -> None:
        try:
            save_transcript(self.store, self.transcript)
        except sqlite3.Error as exc:
            logger.error("Could not persist chat history", extra={"error": str(exc)})

    def _discard(self, key: str) -> None:
        try:
            self.store.remove_item(key)
        except sqlite3.Error as exc:
            logger.error("Could not discard corrupt entry", extra={"key": key, "error": str(exc)})
