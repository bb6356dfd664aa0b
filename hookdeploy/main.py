"""hookdeploy entry point: wires the server, dispatcher and audit log together."""

from __future__ import annotations

import asyncio
import signal

import click

from hookdeploy import __version__
from hookdeploy.config import ConfigError, Settings, load_settings
from hookdeploy.deploy import AuditLog, Dispatcher, SubprocessRunner
from hookdeploy.utils.logging import get_logger, setup_logging
from hookdeploy.webhooks.server import WebhookServer

log = get_logger(__name__)


class HookDeploy:
    """Main application orchestrator."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

        self.audit = AuditLog(settings.get_log_file())
        self.dispatcher = Dispatcher(
            SubprocessRunner(),
            self.audit,
            script=settings.deploy.script,
            interpreter=settings.deploy.interpreter,
            timeout=settings.deploy.timeout,
        )
        self.server = WebhookServer(
            settings.server,
            settings.get_secret(),
            self.dispatcher,
            self.audit,
        )

    async def start(self) -> None:
        log.info(
            "hookdeploy_starting",
            version=__version__,
            port=self.settings.server.port,
            log_file=str(self.audit.path),
        )
        self.audit.open()
        await self.audit.write("Starting Webhook Deploy Server...")
        await self.server.start()
        log.info("hookdeploy_ready")

    async def stop(self) -> None:
        log.info("hookdeploy_stopping", in_flight=self.dispatcher.in_flight)
        await self.server.stop()
        # Deploys are bounded by their deadline, so this terminates
        await self.dispatcher.drain()
        self.audit.close()
        log.info("hookdeploy_stopped")


async def run(settings: Settings) -> None:
    app = HookDeploy(settings)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        log.info("shutdown_signal")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    await app.start()

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        await app.stop()


@click.command()
@click.option("--config", "config_path", default=None, help="Path to config YAML file")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--port", type=int, default=None, help="Port to listen on (overrides config)")
@click.version_option(__version__, prog_name="hookdeploy")
def cli(config_path: str | None, log_level: str | None, port: int | None) -> None:
    """Run the deploy-on-push webhook server."""
    settings = load_settings(config_path)
    if log_level:
        settings.log_level = log_level
    if port is not None:
        settings.server.port = port
    setup_logging(level=settings.log_level, json_output=settings.log_json)

    try:
        settings.check()
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    asyncio.run(run(settings))


if __name__ == "__main__":
    cli()
