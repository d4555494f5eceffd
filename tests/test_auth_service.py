try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from typing import Dict, List, Optional

import httpx
import pytest

from handson.clients.api import ApiClient
from handson.clients.errors import AuthBackendError, SignInError, SignOutError
from handson.core.config import ApiSettings
from handson.models.session import AuthSession
from handson.schemas.profile import ProfileCreate
from handson.services.auth import AuthService
from handson.services.credentials import CredentialProvider
from handson.services.profiles import ProfileService
from handson.services.session_store import SessionStore


class FakeProfileTable:
    def __init__(self, *, fail_insert: bool = False) -> None:
        self.fail_insert = fail_insert
        self.inserted: List[ProfileCreate] = []

    async def insert_profile(self, access_token: Optional[str], row: ProfileCreate) -> None:
        if self.fail_insert:
            raise AuthBackendError("duplicate key value", status_code=409)
        self.inserted.append(row)


class FakeApi:
    """Routes requests to canned responses keyed by ``METHOD path``."""

    def __init__(self) -> None:
        self.responses: Dict[str, httpx.Response] = {
            "POST /api/users/login": httpx.Response(200, json={"message": "ok"}),
            "POST /api/users/logout": httpx.Response(200, json={"message": "bye"}),
            "GET /api/users/profile": httpx.Response(
                200,
                json={"user": {"id": "user-1", "full_name": "Ada Lovelace", "bio": "Maths"}},
            ),
        }
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.get(
            f"{request.method} {request.url.path}", httpx.Response(404, json={})
        )

    def paths(self) -> List[str]:
        return [f"{r.method} {r.url.path}" for r in self.requests]


class Harness:
    def __init__(self, backend, table: FakeProfileTable, stored: Optional[AuthSession] = None):
        self.fake_api = FakeApi()
        self.store = SessionStore()
        self.credentials = CredentialProvider(backend, _Stored(stored))
        self.api = ApiClient(
            ApiSettings(base_url="http://api.example.test"),
            self.credentials,
            self.store,
            transport=httpx.MockTransport(self.fake_api),
        )
        profiles = ProfileService(self.api, table, backend, self.credentials)  # type: ignore[arg-type]
        self.auth = AuthService(
            self.credentials, self.api, self.store, profiles, table  # type: ignore[arg-type]
        )


class _Stored:
    def __init__(self, session: Optional[AuthSession]) -> None:
        self.session = session

    def load(self) -> Optional[AuthSession]:
        return self.session

    def save(self, session: AuthSession) -> None:
        self.session = session

    def clear(self) -> None:
        self.session = None


@pytest.mark.asyncio
async def test_initialize_adopts_stored_session_and_merges_profile(
    fake_backend, session_factory
) -> None:
    harness = Harness(fake_backend, FakeProfileTable(), stored=session_factory())

    identity = await harness.auth.initialize()

    assert identity is not None
    assert identity.id == "user-1"
    assert identity.full_name == "Ada Lovelace"
    assert identity.bio == "Maths"
    profile_request = harness.fake_api.requests[0]
    assert profile_request.headers["Authorization"] == "Bearer access-1"
    await harness.api.aclose()


@pytest.mark.asyncio
async def test_initialize_without_session_leaves_store_empty(fake_backend) -> None:
    harness = Harness(fake_backend, FakeProfileTable())
    notifications = []
    harness.store.subscribe(notifications.append)

    assert await harness.auth.initialize() is None
    assert notifications == [None]
    assert harness.fake_api.requests == []
    await harness.api.aclose()


@pytest.mark.asyncio
async def test_sign_up_survives_profile_insert_failure(fake_backend) -> None:
    table = FakeProfileTable(fail_insert=True)
    harness = Harness(fake_backend, table)
    await harness.auth.initialize()

    identity = await harness.auth.sign_up("ada@example.com", "pw", full_name="Ada Lovelace")

    assert identity.id == "user-1"
    assert harness.store.get_current_identity() is not None
    assert harness.store.get_current_identity().id == "user-1"
    assert fake_backend.signed_up == [
        {"email": "ada@example.com", "data": {"full_name": "Ada Lovelace"}}
    ]
    await harness.api.aclose()


@pytest.mark.asyncio
async def test_sign_up_seeds_profile_row(fake_backend) -> None:
    table = FakeProfileTable()
    harness = Harness(fake_backend, table)
    await harness.auth.initialize()

    await harness.auth.sign_up("ada@example.com", "pw", full_name="Ada Lovelace")

    assert [row.username for row in table.inserted] == ["ada"]
    assert table.inserted[0].user_id == "user-1"
    await harness.api.aclose()


@pytest.mark.asyncio
async def test_sign_in_posts_login_with_fresh_credential(fake_backend) -> None:
    harness = Harness(fake_backend, FakeProfileTable())
    await harness.auth.initialize()

    identity = await harness.auth.sign_in("ada@example.com", "pw")

    assert identity.id == "user-1"
    login = next(r for r in harness.fake_api.requests if r.url.path == "/api/users/login")
    assert login.headers["Authorization"] == "Bearer access-1"
    assert harness.store.get_current_identity().full_name == "Ada Lovelace"
    await harness.api.aclose()


@pytest.mark.asyncio
async def test_sign_in_rejected_by_backend(fake_backend) -> None:
    fake_backend.sign_in_error = AuthBackendError("Invalid login credentials", status_code=400)
    harness = Harness(fake_backend, FakeProfileTable())
    await harness.auth.initialize()

    with pytest.raises(SignInError, match="Invalid login credentials"):
        await harness.auth.sign_in("ada@example.com", "wrong")

    assert harness.fake_api.requests == []
    await harness.api.aclose()


@pytest.mark.asyncio
async def test_sign_in_api_failure_discards_backend_session(fake_backend) -> None:
    harness = Harness(fake_backend, FakeProfileTable())
    harness.fake_api.responses["POST /api/users/login"] = httpx.Response(
        500, json={"message": "Server error during login"}
    )
    await harness.auth.initialize()

    with pytest.raises(SignInError, match="Server error during login"):
        await harness.auth.sign_in("ada@example.com", "pw")

    assert harness.credentials.current_session is None
    assert harness.store.get_current_identity() is None
    await harness.api.aclose()


@pytest.mark.asyncio
async def test_sign_out_always_clears_identity(fake_backend, session_factory) -> None:
    harness = Harness(fake_backend, FakeProfileTable(), stored=session_factory())
    harness.fake_api.responses["POST /api/users/logout"] = httpx.Response(500, json={})
    await harness.auth.initialize()
    assert harness.store.get_current_identity() is not None

    with pytest.raises(SignOutError) as excinfo:
        await harness.auth.sign_out()

    assert len(excinfo.value.failures) == 1
    assert fake_backend.sign_out_calls == ["access-1"]
    assert harness.store.get_current_identity() is None
    assert harness.credentials.current_session is None
    await harness.api.aclose()


@pytest.mark.asyncio
async def test_sign_out_when_everything_succeeds(fake_backend, session_factory) -> None:
    harness = Harness(fake_backend, FakeProfileTable(), stored=session_factory())
    await harness.auth.initialize()
    notifications = []
    harness.store.subscribe(notifications.append)

    await harness.auth.sign_out()

    assert "POST /api/users/logout" in harness.fake_api.paths()
    assert notifications[-1] is None
    assert notifications.count(None) == 1
    await harness.api.aclose()


@pytest.mark.asyncio
async def test_profile_fetch_failure_keeps_base_identity(fake_backend, session_factory) -> None:
    harness = Harness(fake_backend, FakeProfileTable(), stored=session_factory())
    harness.fake_api.responses["GET /api/users/profile"] = httpx.Response(401, json={})

    identity = await harness.auth.initialize()

    assert identity is not None
    assert identity.id == "user-1"
    assert identity.full_name is None
    assert fake_backend.refresh_calls == []
    await harness.api.aclose()


@pytest.mark.asyncio
async def test_complete_oauth_sign_in_hands_session_to_api(fake_backend) -> None:
    harness = Harness(fake_backend, FakeProfileTable())
    harness.fake_api.responses["POST /api/users/google-login"] = httpx.Response(
        200, json={"message": "ok"}
    )
    await harness.auth.initialize()

    identity = await harness.auth.complete_oauth_sign_in(
        "https://app.example.test/dashboard#access_token=oauth-token&expires_in=3600"
    )

    assert identity.id == "user-1"
    google_login = next(
        r for r in harness.fake_api.requests if r.url.path == "/api/users/google-login"
    )
    assert b"oauth-token" in google_login.content
    await harness.api.aclose()
