import pytest

from backend.app.core.errors import ValidationError
from backend.app.core.llm import extract_assistant_text
from backend.app.schemas.relay import PRODUCTS_MARKER, RelayRequest


def test_from_body_drops_boolean_temperature_and_bad_max_tokens():
    req = RelayRequest.from_body({"temperature": True, "max_tokens": 0, "model": ""})

    assert req.temperature is None
    assert req.max_tokens is None
    assert req.model is None


def test_falsy_selected_adds_no_system_message():
    req = RelayRequest.from_body({"messages": [{"role": "user", "content": "x"}], "selected": []})

    assert req.upstream_messages() == [{"role": "user", "content": "x"}]


def test_selected_is_serialized_compactly():
    req = RelayRequest.from_body({"selected": [{"id": 1, "name": "Crème"}]})

    first = req.upstream_messages()[0]
    assert first["content"] == PRODUCTS_MARKER + '[{"id":1,"name":"Crème"}]'


def test_from_body_rejects_non_objects():
    with pytest.raises(ValidationError):
        RelayRequest.from_body("just a string")


@pytest.mark.parametrize(
    "data",
    [
        None,
        {},
        {"choices": []},
        {"choices": [{}]},
        {"choices": [{"message": {"content": ""}}]},
        {"choices": [{"message": {"content": None}}]},
    ],
)
def test_extract_assistant_text_degrades_to_none(data):
    assert extract_assistant_text(data) is None
