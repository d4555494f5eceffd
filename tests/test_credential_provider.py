try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import asyncio
from typing import List, Optional, Tuple

import pytest

from handson.clients.errors import AuthBackendError, NoSessionError
from handson.models.session import AuthChangeEvent, AuthSession
from handson.services.credentials import CredentialProvider


class MemoryPersistence:
    def __init__(self, session: Optional[AuthSession] = None) -> None:
        self.session = session
        self.saves = 0

    def load(self) -> Optional[AuthSession]:
        return self.session

    def save(self, session: AuthSession) -> None:
        self.session = session
        self.saves += 1

    def clear(self) -> None:
        self.session = None


def _recorder(provider: CredentialProvider) -> List[Tuple[AuthChangeEvent, Optional[str]]]:
    events: List[Tuple[AuthChangeEvent, Optional[str]]] = []
    provider.on_change(
        lambda event, session: events.append((event, session.access_token if session else None))
    )
    return events


@pytest.mark.asyncio
async def test_start_emits_initial_session_once(fake_backend, session_factory) -> None:
    stored = session_factory()
    provider = CredentialProvider(fake_backend, MemoryPersistence(stored))
    events = _recorder(provider)

    assert (await provider.start()) == stored
    await provider.start()

    assert events == [(AuthChangeEvent.INITIAL_SESSION, "access-1")]


@pytest.mark.asyncio
async def test_start_without_stored_session_reports_none(fake_backend) -> None:
    provider = CredentialProvider(fake_backend, MemoryPersistence())
    events = _recorder(provider)

    assert await provider.start() is None
    assert events == [(AuthChangeEvent.INITIAL_SESSION, None)]


@pytest.mark.asyncio
async def test_get_session_refreshes_expired_credential(fake_backend, session_factory) -> None:
    persistence = MemoryPersistence(session_factory(expires_in=-10))
    provider = CredentialProvider(fake_backend, persistence)
    events = _recorder(provider)

    token = await provider.get_access_token()

    assert token == "access-2"
    assert fake_backend.refresh_calls == ["refresh-1"]
    assert persistence.session is not None and persistence.session.access_token == "access-2"
    assert events == [(AuthChangeEvent.TOKEN_REFRESHED, "access-2")]


@pytest.mark.asyncio
async def test_get_session_returns_none_when_refresh_fails(fake_backend, session_factory) -> None:
    fake_backend.refresh_error = AuthBackendError("unreachable")
    provider = CredentialProvider(fake_backend, MemoryPersistence(session_factory(expires_in=-10)))

    assert await provider.get_session() is None


@pytest.mark.asyncio
async def test_concurrent_refreshes_share_one_backend_call(fake_backend, session_factory) -> None:
    fake_backend.refresh_gate = asyncio.Event()
    provider = CredentialProvider(fake_backend, MemoryPersistence(session_factory()))

    pending = [asyncio.ensure_future(provider.refresh()) for _ in range(3)]
    await asyncio.sleep(0)
    fake_backend.refresh_gate.set()
    results = await asyncio.gather(*pending)

    assert fake_backend.refresh_calls == ["refresh-1"]
    assert {session.access_token for session in results} == {"access-2"}


@pytest.mark.asyncio
async def test_refresh_after_completion_starts_a_new_round_trip(
    fake_backend, session_factory
) -> None:
    provider = CredentialProvider(fake_backend, MemoryPersistence(session_factory()))

    await provider.refresh()
    await provider.refresh()

    assert fake_backend.refresh_calls == ["refresh-1", "refresh-2"]


@pytest.mark.asyncio
async def test_refresh_without_session_raises(fake_backend) -> None:
    provider = CredentialProvider(fake_backend, MemoryPersistence())

    with pytest.raises(NoSessionError):
        await provider.refresh()
    assert fake_backend.refresh_calls == []


@pytest.mark.asyncio
async def test_rejected_refresh_discards_session(fake_backend, session_factory) -> None:
    fake_backend.refresh_error = AuthBackendError("invalid_grant", status_code=400)
    persistence = MemoryPersistence(session_factory())
    provider = CredentialProvider(fake_backend, persistence)
    events = _recorder(provider)

    with pytest.raises(AuthBackendError):
        await provider.refresh()

    assert provider.current_session is None
    assert persistence.session is None
    assert events == [(AuthChangeEvent.SIGNED_OUT, None)]


@pytest.mark.asyncio
async def test_unreachable_backend_keeps_session(fake_backend, session_factory) -> None:
    fake_backend.refresh_error = AuthBackendError("timed out")
    persistence = MemoryPersistence(session_factory())
    provider = CredentialProvider(fake_backend, persistence)

    with pytest.raises(AuthBackendError):
        await provider.refresh()

    assert persistence.session is not None


@pytest.mark.asyncio
async def test_sign_in_stores_session_and_notifies(fake_backend) -> None:
    persistence = MemoryPersistence()
    provider = CredentialProvider(fake_backend, persistence)
    events = _recorder(provider)

    session = await provider.sign_in_with_password("ada@example.com", "pw")

    assert provider.current_session == session
    assert persistence.saves == 1
    assert events == [(AuthChangeEvent.SIGNED_IN, "access-1")]


@pytest.mark.asyncio
async def test_sign_out_clears_locally_even_when_backend_fails(
    fake_backend, session_factory
) -> None:
    fake_backend.sign_out_error = AuthBackendError("boom", status_code=500)
    persistence = MemoryPersistence(session_factory())
    provider = CredentialProvider(fake_backend, persistence)
    events = _recorder(provider)

    with pytest.raises(AuthBackendError):
        await provider.sign_out()

    assert fake_backend.sign_out_calls == ["access-1"]
    assert persistence.session is None
    assert events == [(AuthChangeEvent.SIGNED_OUT, None)]


@pytest.mark.asyncio
async def test_set_session_from_redirect_fragment(fake_backend) -> None:
    provider = CredentialProvider(fake_backend)
    events = _recorder(provider)

    session = await provider.set_session_from_url(
        "https://app.example.test/dashboard#access_token=oauth-token"
        "&refresh_token=oauth-refresh&expires_in=3600&token_type=bearer"
    )

    assert session.access_token == "oauth-token"
    assert session.credential.refresh_token == "oauth-refresh"
    assert not session.credential.is_expired()
    assert events == [(AuthChangeEvent.SIGNED_IN, "oauth-token")]


@pytest.mark.asyncio
async def test_set_session_from_url_surfaces_provider_error(fake_backend) -> None:
    provider = CredentialProvider(fake_backend)

    with pytest.raises(AuthBackendError, match="access denied"):
        await provider.set_session_from_url(
            "https://app.example.test/#error=access_denied&error_description=access+denied"
        )
    with pytest.raises(NoSessionError):
        await provider.set_session_from_url("https://app.example.test/dashboard")


@pytest.mark.asyncio
async def test_async_listener_failure_is_contained(fake_backend) -> None:
    provider = CredentialProvider(fake_backend)
    seen: List[AuthChangeEvent] = []

    async def broken(event, session) -> None:
        raise RuntimeError("listener bug")

    provider.on_change(broken)
    provider.on_change(lambda event, session: seen.append(event))

    await provider.sign_in_with_password("ada@example.com", "pw")

    assert seen == [AuthChangeEvent.SIGNED_IN]
