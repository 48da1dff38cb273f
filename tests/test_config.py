import logging

from ledger.config import Settings, configure_logging, load_settings


def test_defaults(monkeypatch):
    for name in ("LEDGER_DB_PATH", "LEDGER_MONTHLY_SAVINGS_GOAL", "LEDGER_DEBUG", "LEDGER_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.db_path == "finance_ai.db"
    assert settings.monthly_savings_goal == 20000
    assert settings.debug is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("LEDGER_DB_PATH", "/tmp/other.db")
    monkeypatch.setenv("LEDGER_MONTHLY_SAVINGS_GOAL", "5000")
    monkeypatch.setenv("LEDGER_CURRENCY_SYMBOL", "$")
    monkeypatch.setenv("LEDGER_LOG_LEVEL", "warning")
    monkeypatch.setenv("LEDGER_DEBUG", "yes")
    monkeypatch.setenv("LEDGER_RESET_ON_SCHEMA_CHANGE", "1")

    settings = load_settings()
    assert settings == Settings(
        db_path="/tmp/other.db",
        monthly_savings_goal=5000,
        currency_symbol="$",
        log_level="WARNING",
        debug=True,
        reset_on_schema_change=True,
    )


def test_configure_logging_debug(monkeypatch):
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))
    configure_logging(Settings(debug=True))
    assert calls["level"] == logging.DEBUG
