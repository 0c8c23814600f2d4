from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from staffgate.api.sessions import RedirectNavigator
from staffgate.api.main import create_app
from staffgate.core.config import Settings
from staffgate.domain.models import Profile, Session
from staffgate.domain.services.session_manager import SessionManager
from staffgate.libs.storage import InMemoryStorage
from tests.utils import FakeIdentityProvider, FakeProfileLookup, RecordingNavigator


@pytest.fixture()
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture()
def session_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture()
def local_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture()
def navigator() -> RecordingNavigator:
    return RecordingNavigator()


@pytest.fixture()
def build_manager(
    settings: Settings,
    session_storage: InMemoryStorage,
    local_storage: InMemoryStorage,
    navigator: RecordingNavigator,
) -> Callable[..., SessionManager]:
    def _build(
        identity: FakeIdentityProvider | None = None,
        profiles: FakeProfileLookup | None = None,
        **overrides,
    ) -> SessionManager:
        return SessionManager(
            identity=identity or FakeIdentityProvider(),
            profiles=profiles or FakeProfileLookup(),
            session_storage=session_storage,
            local_storage=local_storage,
            navigate=navigator,
            settings=settings.model_copy(update=overrides) if overrides else settings,
        )

    return _build


@pytest.fixture()
async def started_manager(
    build_manager: Callable[..., SessionManager],
) -> AsyncIterator[Callable[..., SessionManager]]:
    """Factory for managers that are started and closed around the test."""
    managers: list[SessionManager] = []

    async def _start(*args, **kwargs) -> SessionManager:
        manager = build_manager(*args, **kwargs)
        await manager.start()
        await manager.work_queue.join()
        managers.append(manager)
        return manager

    yield _start
    for manager in managers:
        await manager.close()


@pytest.fixture()
def client_for(settings: Settings) -> Iterator[Callable[..., TestClient]]:
    """Start the application; every client cookie gets a manager seeded with session/profile."""
    clients: list[TestClient] = []

    def _client(
        session: Session | None = None,
        profile: Profile | None = None,
        *,
        identity: FakeIdentityProvider | None = None,
        **overrides,
    ) -> TestClient:
        app_settings = settings.model_copy(update=overrides) if overrides else settings

        def factory(_: Settings, redirect: RedirectNavigator, client_id: str) -> SessionManager:
            return SessionManager(
                identity=identity or FakeIdentityProvider(session),
                profiles=FakeProfileLookup(profile),
                session_storage=InMemoryStorage(),
                local_storage=InMemoryStorage(),
                navigate=redirect,
                settings=app_settings,
            )

        client = TestClient(create_app(session_manager_factory=factory))
        client.__enter__()
        clients.append(client)
        return client

    yield _client
    for client in clients:
        client.__exit__(None, None, None)
