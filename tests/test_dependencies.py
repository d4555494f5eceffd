try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from pathlib import Path
from typing import Iterator

import pytest

from handson import dependencies
from handson.core.config import get_settings
from handson.dependencies import clients as client_factories
from handson.dependencies import config as config_factories


def _clear_caches() -> None:
    get_settings.cache_clear()
    config_factories._settings_singleton.cache_clear()
    for name in client_factories.__all__:
        factory = getattr(client_factories, name)
        if hasattr(factory, "cache_clear"):
            factory.cache_clear()


@pytest.fixture
def fresh_container(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    db_path = tmp_path / "state" / "session.db"
    monkeypatch.setenv("SUPABASE_SESSION_DB_PATH", str(db_path))
    monkeypatch.setenv("HANDSON_LOG_LEVEL", "DEBUG")
    _clear_caches()
    yield db_path
    _clear_caches()


@pytest.mark.asyncio
async def test_container_shares_singletons(fresh_container: Path) -> None:
    auth = dependencies.get_auth_service()
    api = dependencies.get_api_client()

    assert dependencies.get_auth_service() is auth
    assert dependencies.get_session_store() is dependencies.get_session_store()
    assert dependencies.get_credential_provider() is dependencies.get_credential_provider()
    assert dependencies.get_event_service() is not dependencies.get_event_service()
    assert fresh_container.exists()
    assert dependencies.get_app_settings().log_level == "DEBUG"

    assert await auth.initialize() is None
    await api.aclose()


def test_missing_backend_configuration_is_reported_not_raised(
    fresh_container: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setenv("SUPABASE_URL", "")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "")
    _clear_caches()

    with caplog.at_level("ERROR"):
        settings = dependencies.get_app_settings()

    assert settings.missing_configuration() == ["SUPABASE_URL", "SUPABASE_ANON_KEY"]
    assert "SUPABASE_URL" in caplog.text
    assert dependencies.get_token_cipher_service() is not None


def test_cipher_without_secret_warns(
    fresh_container: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.delenv("HANDSON_TOKEN_ENCRYPTION_SECRET", raising=False)
    _clear_caches()

    with caplog.at_level("WARNING"):
        cipher = dependencies.get_token_cipher_service()

    assert "HANDSON_TOKEN_ENCRYPTION_SECRET is not set" in caplog.text
    assert cipher.open(cipher.seal({"token": "t"})) == {"token": "t"}


def test_cipher_with_secret_does_not_warn(
    fresh_container: Path, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level("WARNING"):
        dependencies.get_token_cipher_service()

    assert "HANDSON_TOKEN_ENCRYPTION_SECRET" not in caplog.text
