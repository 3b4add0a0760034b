from pathlib import Path

import pytest

from callout.config import load_settings

GOOD_SECRET = "a-perfectly-reasonable-secret-value-1234"

ENV_KEYS = (
    "JWT_SECRET",
    "JWT_EXPIRY_HOURS",
    "HOST",
    "PORT",
    "LOG_LEVEL",
    "CORS_ORIGINS",
    "LEASE_TIMEOUT_SECONDS",
    "SEED_PATH",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        # setenv first so teardown also removes values load_dotenv wrote
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


def test_defaults(monkeypatch) -> None:
    monkeypatch.setenv("JWT_SECRET", GOOD_SECRET)

    settings = load_settings()

    assert settings.jwt_secret == GOOD_SECRET
    assert settings.jwt_expiry_hours == 12
    assert settings.port == 8000
    assert settings.cors_origins == ["http://localhost:5173"]
    assert settings.lease_timeout_seconds == 10.0
    assert settings.seed_path is None


def test_overrides(monkeypatch) -> None:
    monkeypatch.setenv("JWT_SECRET", GOOD_SECRET)
    monkeypatch.setenv("PORT", "9001")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.test, https://b.test,")
    monkeypatch.setenv("LEASE_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("SEED_PATH", "/tmp/seed.json")

    settings = load_settings()

    assert settings.port == 9001
    assert settings.cors_origins == ["https://a.test", "https://b.test"]
    assert settings.lease_timeout_seconds == 2.5
    assert settings.seed_path == Path("/tmp/seed.json")


def test_env_file_is_read(tmp_path) -> None:
    env_file = tmp_path / "callout.env"
    env_file.write_text(f"JWT_SECRET={GOOD_SECRET}\nPORT=7000\n")

    settings = load_settings(str(env_file))

    assert settings.port == 7000


@pytest.mark.parametrize(
    "secret",
    [None, "too-short", "change_me_change_me_change_me_change_me"],
)
def test_rejects_weak_secrets(monkeypatch, secret) -> None:
    if secret is not None:
        monkeypatch.setenv("JWT_SECRET", secret)

    with pytest.raises(RuntimeError):
        load_settings()


@pytest.mark.parametrize(
    ("key", "value"),
    [("PORT", "eighty"), ("LEASE_TIMEOUT_SECONDS", "0"), ("JWT_EXPIRY_HOURS", "1.5")],
)
def test_rejects_invalid_numbers(monkeypatch, key, value) -> None:
    monkeypatch.setenv("JWT_SECRET", GOOD_SECRET)
    monkeypatch.setenv(key, value)

    with pytest.raises(RuntimeError):
        load_settings()
