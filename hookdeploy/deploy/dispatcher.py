"""Background deploy dispatch with a per-task deadline."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

import structlog

from hookdeploy.deploy.audit import AuditLog
from hookdeploy.deploy.runner import ProcessResult, ProcessRunner
from hookdeploy.utils.logging import get_logger, redact

log = get_logger(__name__)


@dataclass(frozen=True)
class DeploymentTask:
    project_name: str
    clone_url: str
    started_at: datetime
    deadline: datetime

    @classmethod
    def start(cls, project_name: str, clone_url: str, timeout: float) -> DeploymentTask:
        now = datetime.now(timezone.utc)
        return cls(
            project_name=project_name,
            clone_url=clone_url,
            started_at=now,
            deadline=now + timedelta(seconds=timeout),
        )

    def remaining(self) -> float:
        return max((self.deadline - datetime.now(timezone.utc)).total_seconds(), 0.0)


class Dispatcher:
    """Starts the deploy script for a project without waiting on it.

    Overlapping deploys, including of the same project, run concurrently.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        audit: AuditLog,
        script: str | Path,
        interpreter: str = "/bin/bash",
        timeout: float = 30.0,
    ) -> None:
        self._runner = runner
        self._audit = audit
        self._script = str(script)
        self._interpreter = interpreter
        self._timeout = timeout
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def dispatch(self, project_name: str, clone_url: str) -> DeploymentTask:
        """Schedule a deploy on the running loop and return immediately."""
        task = DeploymentTask.start(project_name, clone_url, self._timeout)
        bg = asyncio.create_task(self._run(task), name=f"deploy-{project_name}")
        self._tasks.add(bg)
        bg.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every in-flight deploy to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def build_args(self, task: DeploymentTask) -> list[str]:
        return [self._interpreter, self._script, task.project_name, task.clone_url]

    async def _run(self, task: DeploymentTask) -> None:
        project = task.project_name
        # Each task runs in its own context copy, so this binding stays local
        structlog.contextvars.bind_contextvars(project=project)
        await self._audit.write(f"Running deploy script for project: {project}")
        log.info(
            "deploy_started",
            clone_url=redact(task.clone_url),
            deadline=task.deadline.isoformat(),
        )

        try:
            result = await self._runner.run(self.build_args(task), task.remaining())
        except Exception as e:
            log.exception("deploy_runner_error")
            result = ProcessResult(success=False, error=str(e) or type(e).__name__)

        # Captured output goes in verbatim; a run that printed nothing adds no entry
        if result.output:
            await self._audit.write(result.output)

        if result.success:
            await self._audit.write(f"Deployment success for project: {project}")
            log.info("deploy_succeeded")
        else:
            await self._audit.write(f"Deployment error for project: {project}: {result.error}")
            log.warning("deploy_failed", error=result.error, exit_code=result.exit_code)
