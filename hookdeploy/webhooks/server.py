"""Webhook HTTP server using aiohttp."""

from __future__ import annotations

from aiohttp import web
from aiohttp.http_exceptions import HttpProcessingError

from hookdeploy.config import ServerConfig
from hookdeploy.deploy.audit import AuditLog
from hookdeploy.deploy.dispatcher import Dispatcher
from hookdeploy.utils.logging import get_logger
from hookdeploy.webhooks.handlers import (
    SIGNATURE_HEADER,
    PayloadError,
    parse_push_event,
    verify_signature,
)

log = get_logger(__name__)


class WebhookServer:
    """Receives push webhooks and hands accepted ones to the dispatcher."""

    def __init__(
        self,
        config: ServerConfig,
        secret: bytes,
        dispatcher: Dispatcher,
        audit: AuditLog,
    ) -> None:
        self._config = config
        self._secret = secret
        self._dispatcher = dispatcher
        self._audit = audit
        self._runner: web.AppRunner | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        app = self.build_app()
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.bind, self._config.port)
        await site.start()
        log.info(
            "webhook_server_started",
            bind=self._config.bind,
            port=self._config.port,
        )

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        log.info("webhook_server_stopped")

    # ------------------------------------------------------------------
    # App construction
    # ------------------------------------------------------------------

    def build_app(self) -> web.Application:
        app = web.Application(client_max_size=self._config.max_body_size)
        app.router.add_route("*", "/webhook", self._handle_webhook)
        app.router.add_get("/health", self._handle_health)
        return app

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    async def _handle_webhook(self, request: web.Request) -> web.Response:
        if request.method != "POST":
            return web.Response(status=405, text="Method not allowed")

        signature = request.headers.get(SIGNATURE_HEADER, "")
        if not signature:
            await self._audit.write("Missing signature")
            log.warning("webhook_rejected", reason="missing_signature", remote=request.remote)
            return web.Response(status=401, text="Missing signature")

        # Verification runs on these exact bytes, never on re-serialized JSON
        try:
            body = await request.read()
        except (web.HTTPRequestEntityTooLarge, HttpProcessingError, ConnectionError):
            log.info("webhook_body_unreadable", remote=request.remote)
            return web.Response(status=400, text="Cannot read body")

        if not verify_signature(self._secret, body, signature):
            await self._audit.write("Invalid signature")
            log.warning("webhook_rejected", reason="invalid_signature", remote=request.remote)
            return web.Response(status=401, text="Invalid signature")

        try:
            event = parse_push_event(body)
        except PayloadError as e:
            if isinstance(e.__cause__, ValueError):
                return web.Response(status=400, text="Invalid JSON")
            return web.Response(status=400, text="Invalid payload")

        project = event.project_name
        await self._audit.write(f"Webhook triggered for project: {project}")
        log.info("deploy_accepted", project=project)
        self._dispatcher.dispatch(project, event.clone_url)

        return web.Response(status=202, text=f"Deployment started for project: {project}")

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.Response(status=200, text="OK")
