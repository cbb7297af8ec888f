"""SDK entry point.

Wires together: HTTP client, session, error reporter, request executor,
API controller, cursor store, batch builder, uploader and sync engine.

Lifecycle gating: ``on_app_foreground`` and ``notify_changes`` start an
automatic sync pass only while the app is active and manual post mode is
off. ``on_app_background`` stops new automatic passes from starting; it
never aborts a pass already in flight. ``sync_now`` always runs.
"""

import asyncio
from datetime import datetime

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from healthsync.adapters.http_client import build_client
from healthsync.adapters.protocol import ChangeReader, CredentialStore, InMemoryCredentialStore
from healthsync.api.controller import ApiController
from healthsync.api.executor import RequestExecutor
from healthsync.api.session import Session
from healthsync.builder import BatchBuilder
from healthsync.cursor_store import CursorStore
from healthsync.domain.models import AnalysisResponse, CredentialPair, Demographic, EmptyResponse
from healthsync.reporter import ErrorReporter
from healthsync.sync import StreamSyncResult, SyncEngine
from healthsync.uploader import ChunkedUploader
from shared import database
from shared.config import Settings, settings
from shared.logging import configure_logging

logger = structlog.get_logger()


class HealthSync:
    def __init__(
        self,
        reader: ChangeReader,
        credential_store: CredentialStore | None = None,
        config: Settings = settings,
        db_engine: AsyncEngine | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._db_engine = db_engine or database.engine
        session_factory = (
            async_sessionmaker(db_engine, expire_on_commit=False)
            if db_engine is not None
            else database.async_session_factory
        )

        self._client = build_client(config, transport)
        self.session = Session(credential_store or InMemoryCredentialStore())
        self.reporter = ErrorReporter(self._client, self.session, config)
        self.api = ApiController(RequestExecutor(self._client, self.session, self.reporter, config))
        self.cursors = CursorStore(session_factory)
        self.engine = SyncEngine(
            reader=reader,
            builder=BatchBuilder(config),
            uploader=ChunkedUploader(self.api, self.cursors, config),
            cursors=self.cursors,
            session=self.session,
            reporter=self.reporter,
            config=config,
        )
        self._active = False
        self._auto_pass: asyncio.Task[list[StreamSyncResult]] | None = None

    async def __aenter__(self) -> "HealthSync":
        await self.configure()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def configure(self) -> None:
        configure_logging(json_output=self.config.log_json)
        await database.init_models(self._db_engine)
        logger.info(
            "sdk_configured",
            environment=self.config.environment,
            streams=sorted(self.config.enabled_streams),
            manual_post_mode=self.config.manual_post_mode,
            authenticated=self.session.is_authenticated,
        )

    async def close(self) -> None:
        if self._auto_pass is not None:
            await asyncio.gather(self._auto_pass, return_exceptions=True)
        await self.reporter.drain()
        await self._client.aclose()

    # Credentials

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated

    async def authenticate(self, profile_token: str, refresh_token: str) -> None:
        if not profile_token or not refresh_token:
            raise ValueError("profile_token and refresh_token are required")
        await self.session.login(
            CredentialPair(profile_token=profile_token, refresh_token=refresh_token)
        )

    async def deauthenticate(self) -> None:
        """Forget the credentials and every stream's sync progress."""
        await self.session.clear()
        await self.cursors.clear()

    # Profile

    async def get_demographic(self) -> Demographic:
        return await self.api.get_demographic()

    async def put_demographic(self, demographic: Demographic) -> EmptyResponse:
        return await self.api.put_demographic(demographic)

    async def analyze(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        include_source_data: bool = False,
    ) -> AnalysisResponse:
        return await self.api.analyze(start, end, include_source_data)

    # Sync

    async def sync_now(self) -> list[StreamSyncResult]:
        return await self.engine.sync_all()

    def on_app_foreground(self) -> asyncio.Task | None:
        self._active = True
        return self._start_automatic_pass("foreground")

    def on_app_background(self) -> None:
        self._active = False

    def notify_changes(self) -> asyncio.Task | None:
        """Called by the host when its platform signals new samples."""
        return self._start_automatic_pass("changes")

    def _start_automatic_pass(self, trigger: str) -> asyncio.Task | None:
        if not self._active or self.config.manual_post_mode:
            return None
        if not self.session.is_authenticated:
            return None
        if self._auto_pass is not None and not self._auto_pass.done():
            return self._auto_pass
        logger.info("sync_triggered", trigger=trigger)
        self._auto_pass = asyncio.get_running_loop().create_task(self.engine.sync_all())
        return self._auto_pass
