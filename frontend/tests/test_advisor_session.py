import json

import pytest

from frontend.advisor.config import ClientSettings
from frontend.advisor.errors import (
    CatalogLoadError,
    ConfigurationError,
    EmptySelectionError,
    TransportError,
)
from frontend.advisor.models import ChatMessage, ExchangeStatus, Product
from frontend.advisor.state import EMPTY_RESULT_TEXT, ROUTINE_INSTRUCTION, AdvisorSession
from frontend.advisor.storage import SELECTION_KEY, TRANSCRIPT_KEY, LocalStore, load_selection, load_transcript

PRODUCTS = [
    Product(id=1, name="Hyaluronic Serum", brand="L'Oréal Paris", category="skincare",
            description="Hydrating serum", image="https://img/1.jpg"),
    Product(id=3, name="Foaming Cleanser", brand="CeraVe", category="cleanser",
            description="Gel cleanser", image="https://img/3.jpg"),
    Product(id=5, name="Sunscreen SPF 60", brand="La Roche-Posay", category="suncare",
            description="Broad spectrum", image="https://img/5.jpg"),
    Product(id=7, name="Matte Foundation", brand="L'Oréal Paris", category="makeup",
            description="Long wear", image="https://img/7.jpg"),
]


class FakeRelay:
    def __init__(self, result="Morning: cleanse. Evening: serum.", error=None):
        self.result = result
        self.error = error
        self.calls = []

    def __call__(self, relay_url, payload, timeout):
        self.calls.append((relay_url, payload))
        if not relay_url:
            raise ConfigurationError("relay endpoint is not configured")
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def store(tmp_path):
    return LocalStore(tmp_path / "local.sqlite3")


@pytest.fixture
def make_session(store):
    def _make(relay_url="https://relay.test/", relay=None, products=PRODUCTS, **overrides):
        settings = ClientSettings(
            _env_file=None,
            relay_url=relay_url,
            catalog_source="catalog.json",
            **overrides,
        )
        session = AdvisorSession(
            settings=settings,
            store=store,
            sender=relay or FakeRelay(),
            catalog_fetcher=lambda source, timeout: list(products),
        )
        session.load_catalog()
        return session

    return _make


@pytest.mark.parametrize("category", ["skincare", "cleanser", "makeup", "suncare"])
def test_filter_by_category_returns_only_matching_products(make_session, category):
    session = make_session()

    result = session.filter_by_category(category)

    assert result
    assert all(p.category == category for p in result)


def test_filter_by_unknown_category_is_empty(make_session):
    assert make_session().filter_by_category("fragrance") == []


def test_categories_keep_catalog_order(make_session):
    assert make_session().categories() == ["skincare", "cleanser", "suncare", "makeup"]


def test_toggle_twice_restores_membership(make_session):
    session = make_session()
    session.toggle_selection(1)
    before = session.selected_ids

    assert session.toggle_selection(3) is True
    assert session.toggle_selection(3) is False
    assert session.selected_ids == before


def test_toggle_unknown_id_is_ignored(make_session, store):
    session = make_session()

    assert session.toggle_selection(999) is False
    assert session.selected_ids == []
    assert store.get_item(SELECTION_KEY) is None


def test_selection_changes_are_persisted(make_session, store):
    session = make_session()
    session.toggle_selection(7)
    session.toggle_selection(3)
    assert load_selection(store) == [7, 3]

    session.remove_selection(7)
    assert load_selection(store) == [3]

    session.clear_selections()
    assert load_selection(store) == []


def test_build_routine_request_requires_a_selection(make_session):
    with pytest.raises(EmptySelectionError):
        make_session().build_routine_request()


def test_build_routine_request_payload(make_session):
    session = make_session(model="gpt-4o-mini", temperature=0.2)
    session.toggle_selection(7)
    session.toggle_selection(1)

    payload = session.build_routine_request().to_json()

    assert [p["id"] for p in payload["selected"]] == [7, 1]
    assert set(payload["selected"][0]) == {"id", "name", "brand", "category", "description"}
    assert payload["messages"][0]["role"] == "system"
    assert payload["messages"][-1] == {"role": "user", "content": ROUTINE_INSTRUCTION}
    assert payload["model"] == "gpt-4o-mini"
    assert payload["temperature"] == 0.2
    assert "max_tokens" not in payload


def test_generate_routine_appends_reply_and_persists(make_session, store):
    relay = FakeRelay()
    session = make_session(relay=relay)
    session.toggle_selection(3)

    message = session.generate_routine()

    assert message == ChatMessage(role="assistant", content="Morning: cleanse. Evening: serum.")
    assert session.transcript == [message]
    assert load_transcript(store) == [message]
    assert session.status is ExchangeStatus.IDLE
    assert relay.calls[0][0] == "https://relay.test/"


def test_generate_routine_without_relay_url_reports_configuration_error(make_session):
    session = make_session(relay_url=None)
    session.toggle_selection(3)
    session.toggle_selection(7)

    session.generate_routine()

    assert session.transcript == [
        ChatMessage(role="assistant", content=ConfigurationError.user_message)
    ]
    assert session.selected_ids == [3, 7]
    assert session.status is ExchangeStatus.IDLE


def test_generate_routine_with_empty_selection_reports_once(make_session):
    relay = FakeRelay()
    session = make_session(relay=relay)

    session.generate_routine()

    assert session.transcript == [
        ChatMessage(role="assistant", content=EmptySelectionError.user_message)
    ]
    assert relay.calls == []


def test_transport_failure_becomes_friendly_message(make_session):
    session = make_session(relay=FakeRelay(error=TransportError("relay unreachable: timeout")))
    session.toggle_selection(1)

    session.generate_routine()

    assert [m.content for m in session.transcript] == [TransportError.user_message]


def test_send_chat_raises_for_caller_to_handle(make_session):
    session = make_session(relay_url=None)
    session.toggle_selection(1)

    with pytest.raises(ConfigurationError):
        session.send_chat(session.build_routine_request())
    assert session.transcript == []
    assert session.status is ExchangeStatus.IDLE


def test_null_result_uses_fallback_text(make_session):
    session = make_session(relay=FakeRelay(result=None))
    session.toggle_selection(1)

    session.generate_routine()

    assert session.transcript[-1].content == EMPTY_RESULT_TEXT


def test_submit_message_sends_history_with_selection(make_session):
    relay = FakeRelay(result="Use SPF every morning.")
    session = make_session(relay=relay)
    session.toggle_selection(5)

    session.submit_message("  Do I need sunscreen?  ")

    _, payload = relay.calls[0]
    assert payload.messages[-1] == ChatMessage(role="user", content="Do I need sunscreen?")
    assert [p.id for p in payload.selected] == [5]
    assert [m.role for m in session.transcript] == ["user", "assistant"]


def test_blank_message_is_ignored(make_session):
    relay = FakeRelay()
    session = make_session(relay=relay)

    assert session.submit_message("   ") is None
    assert relay.calls == []
    assert session.transcript == []


def test_stale_response_is_dropped(make_session):
    session = make_session()
    first = session.begin_exchange()
    second = session.begin_exchange()

    assert session.complete_exchange(first, "old answer") is None
    assert session.status is ExchangeStatus.AWAITING_RESPONSE
    assert session.complete_exchange(second, "new answer").content == "new answer"
    assert [m.content for m in session.transcript] == ["new answer"]
    assert session.status is ExchangeStatus.IDLE


def test_stale_ids_are_dropped_on_restore(make_session, store):
    store.set_item(SELECTION_KEY, json.dumps([42, 3]))
    session = make_session()
    session.restore_session()

    assert session.selected_ids == [3]
    assert load_selection(store) == [3]
    assert [p.id for p in session.selected_products()] == [3]


def test_stale_ids_are_dropped_when_catalog_changes(make_session, store):
    session = make_session()
    session.toggle_selection(7)
    session.toggle_selection(1)
    session.catalog = [p for p in PRODUCTS if p.id != 7]

    assert [p.id for p in session.selected_products()] == [1]
    assert session.selected_ids == [1]
    assert load_selection(store) == [1]


def test_error_notices_are_not_sent_upstream(make_session):
    relay = FakeRelay(error=TransportError("relay unreachable: timeout"))
    session = make_session(relay=relay)
    session.toggle_selection(1)
    session.generate_routine()

    relay.error = None
    session.submit_message("Try again please")

    _, payload = relay.calls[-1]
    contents = [m.content for m in payload.messages]
    assert TransportError.user_message not in contents
    assert contents[-1] == "Try again please"
    assert TransportError.user_message in [m.content for m in session.transcript]


def test_restore_session_replays_persisted_state(make_session, store):
    store.set_item(SELECTION_KEY, "[3, 7]")
    store.set_item(TRANSCRIPT_KEY, json.dumps([{"role": "user", "content": "hi"},
                                               {"role": "assistant", "content": "hello"}]))
    session = make_session()

    session.restore_session()

    assert session.selected_ids == [3, 7]
    assert [m.content for m in session.transcript] == ["hi", "hello"]


def test_restore_session_resets_corrupt_entries(make_session, store):
    store.set_item(SELECTION_KEY, "{oops")
    store.set_item(TRANSCRIPT_KEY, json.dumps([{"role": "robot", "content": 1}]))
    session = make_session()

    session.restore_session()

    assert session.selected_ids == []
    assert session.transcript == []
    assert store.get_item(SELECTION_KEY) is None
    assert store.get_item(TRANSCRIPT_KEY) is None


def test_failed_catalog_reload_keeps_previous_catalog(make_session):
    session = make_session()

    def _broken(source, timeout):
        raise CatalogLoadError("boom")

    session._fetch_catalog = _broken

    with pytest.raises(CatalogLoadError):
        session.load_catalog()
    assert session.catalog == PRODUCTS
    assert session.catalog_error == CatalogLoadError.user_message


def test_restore_session_survives_missing_catalog(store):
    def _broken(source, timeout):
        raise CatalogLoadError("no such file")

    store.set_item(SELECTION_KEY, "[3]")
    session = AdvisorSession(
        settings=ClientSettings(_env_file=None, catalog_source="missing.json"),
        store=store,
        catalog_fetcher=_broken,
    )

    session.restore_session()

    assert session.catalog == []
    assert session.catalog_error == CatalogLoadError.user_message
    assert session.selected_ids == [3]
