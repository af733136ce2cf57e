from backend.app.core.config import Settings


def test_relay_key_falls_back_to_legacy_env(monkeypatch):
    monkeypatch.delenv("ADVISOR_OPENAI_API_KEY", raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-legacy")

    relay = Settings(_env_file=None).relay

    assert relay.openai_api_key == "sk-legacy"
    assert relay.default_model == "gpt-4o"
    assert relay.default_max_tokens == 300
    assert relay.default_temperature == 0.8


def test_namespaced_key_wins_over_legacy(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-legacy")
    monkeypatch.setenv("ADVISOR_OPENAI_API_KEY", "sk-namespaced")
    monkeypatch.setenv("ADVISOR_DEFAULT_TEMPERATURE", "0")

    relay = Settings(_env_file=None).relay

    assert relay.openai_api_key == "sk-namespaced"
    assert relay.default_temperature == 0.0


def test_empty_key_counts_as_missing(monkeypatch):
    monkeypatch.setenv("ADVISOR_OPENAI_API_KEY", "")
    monkeypatch.setenv("OPENAI_API_KEY", "")

    assert Settings(_env_file=None).relay.openai_api_key is None
