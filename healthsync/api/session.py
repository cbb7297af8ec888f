"""Session: the process-wide credential pair behind a serialized accessor.

Credentials are read at send time, never cached across an await. Writes
(login, refresh, de-authentication) go through one asyncio.Lock and are
persisted to the credential store before they become visible.

Refresh is shared: concurrent requests that hit 401 await the same
in-flight refresh task instead of each starting their own. A request whose
token has already been replaced since it was sent gets the new credentials
without another refresh.
"""

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from healthsync.adapters.protocol import CredentialStore
from healthsync.domain.models import CredentialPair
from shared.exceptions import AuthenticationMissing

logger = structlog.get_logger()

RefreshCall = Callable[[str], Awaitable[CredentialPair]]


class Session:
    def __init__(self, store: CredentialStore) -> None:
        self._store = store
        self._credentials = store.load()
        self._lock = asyncio.Lock()
        self._refresh_task: asyncio.Task[CredentialPair] | None = None

    @property
    def credentials(self) -> CredentialPair | None:
        return self._credentials

    @property
    def profile_token(self) -> str | None:
        return self._credentials.profile_token if self._credentials else None

    @property
    def refresh_token(self) -> str | None:
        return self._credentials.refresh_token if self._credentials else None

    @property
    def is_authenticated(self) -> bool:
        return self._credentials is not None

    async def login(self, credentials: CredentialPair) -> None:
        async with self._lock:
            self._store.save(credentials)
            self._credentials = credentials
        logger.info("session_authenticated")

    async def clear(self) -> None:
        async with self._lock:
            self._store.clear()
            self._credentials = None
        logger.info("session_cleared")

    async def refresh(self, stale_token: str | None, refresh_call: RefreshCall) -> CredentialPair:
        """Return fresh credentials, running at most one refresh at a time.

        Raises whatever ``refresh_call`` raises, for every waiter.
        """
        async with self._lock:
            current = self._credentials
            if current is None:
                raise AuthenticationMissing()
            if current.profile_token != stale_token:
                return current
            if self._refresh_task is None:
                self._refresh_task = asyncio.create_task(
                    self._run_refresh(current.refresh_token, refresh_call)
                )
            task = self._refresh_task
        return await task

    async def _run_refresh(self, refresh_token: str, refresh_call: RefreshCall) -> CredentialPair:
        try:
            fresh = await refresh_call(refresh_token)
            async with self._lock:
                if self._credentials is None:
                    # de-authenticated while the refresh was in flight
                    raise AuthenticationMissing()
                self._store.save(fresh)
                self._credentials = fresh
            logger.info("token_refreshed")
            return fresh
        finally:
            self._refresh_task = None
