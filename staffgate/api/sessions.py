"""
Per-client session managers for the HTTP host.

Each browser client, identified by an opaque cookie, gets its own
``SessionManager`` and navigator. Managers are started on first use and the
least recently used ones are closed once the configured limit is reached.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID, uuid4

import structlog

from staffgate.core.config import Settings
from staffgate.domain.services.session_manager import SessionManager

logger = structlog.get_logger(__name__)


class RedirectNavigator:
    """Navigator for the HTTP host: remembers the last requested target."""

    def __init__(self) -> None:
        self.target: str | None = None

    def __call__(self, path: str) -> None:
        self.target = path

    def consume(self, default: str) -> str:
        target, self.target = self.target, None
        return target or default


SessionManagerFactory = Callable[[Settings, RedirectNavigator, str], SessionManager]


def new_client_id() -> str:
    return uuid4().hex


def parse_client_id(value: str | None) -> str | None:
    """Accept only ids this host could have issued."""
    if not value:
        return None
    try:
        return UUID(hex=value).hex
    except ValueError:
        return None


@dataclass(slots=True)
class ClientSession:
    client_id: str
    manager: SessionManager
    navigator: RedirectNavigator
    ready: asyncio.Task[None]


class ClientSessions:
    """Registry of started session managers keyed by client id."""

    def __init__(self, settings: Settings, factory: SessionManagerFactory) -> None:
        self.settings = settings
        self.factory = factory
        self._clients: OrderedDict[str, ClientSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._clients)

    async def get(self, client_id: str) -> ClientSession:
        """Return the client's session, starting a manager on first use."""
        entry = self._clients.get(client_id)
        if entry is None:
            navigator = RedirectNavigator()
            manager = self.factory(self.settings, navigator, client_id)
            entry = ClientSession(
                client_id=client_id,
                manager=manager,
                navigator=navigator,
                ready=asyncio.get_running_loop().create_task(self._start(manager)),
            )
            self._clients[client_id] = entry
            logger.info("client_session_created", client_id=client_id, clients=len(self))
            await self._evict()
        else:
            self._clients.move_to_end(client_id)

        await asyncio.shield(entry.ready)
        return entry

    async def close(self) -> None:
        while self._clients:
            _, entry = self._clients.popitem(last=False)
            await self._close(entry)

    async def _start(self, manager: SessionManager) -> None:
        await manager.start()
        # The initial profile refresh is queued by start().
        await manager.work_queue.join()

    async def _evict(self) -> None:
        while len(self._clients) > self.settings.max_client_sessions:
            client_id, entry = self._clients.popitem(last=False)
            logger.info("client_session_evicted", client_id=client_id)
            await self._close(entry)

    async def _close(self, entry: ClientSession) -> None:
        if not entry.ready.done():
            entry.ready.cancel()
            try:
                await entry.ready
            except asyncio.CancelledError:
                pass
        await entry.manager.close()
