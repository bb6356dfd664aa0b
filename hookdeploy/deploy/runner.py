"""External process runner used to execute the deploy script."""

from __future__ import annotations

import asyncio
import os
import signal
from abc import ABC, abstractmethod
from dataclasses import dataclass

from hookdeploy.utils.logging import get_logger

log = get_logger(__name__)

# How long to wait for the killed process group to release the output pipe
_REAP_TIMEOUT = 5.0


@dataclass
class ProcessResult:
    success: bool
    output: str = ""
    error: str = ""
    exit_code: int | None = None


class ProcessRunner(ABC):
    @abstractmethod
    async def run(self, args: list[str], timeout: float) -> ProcessResult:
        """Run ``args`` to completion or until ``timeout`` seconds pass.

        Must not raise for start failures, non-zero exit or timeout; those
        come back as ``ProcessResult(success=False, error=...)``.
        """
        ...


class SubprocessRunner(ProcessRunner):
    """Runs a command with stdout and stderr merged into one stream.

    The command gets its own session, so a timeout kills the whole process
    group: a deploy script's ``git clone`` or ``sleep`` dies with it instead
    of holding the output pipe open.
    """

    async def run(self, args: list[str], timeout: float) -> ProcessResult:
        log.debug("process_exec", args=args, timeout=timeout)

        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                start_new_session=True,
            )
        except OSError as e:
            return ProcessResult(success=False, error=f"failed to start {args[0]}: {e}")

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            await self._kill_group(proc)
            return ProcessResult(
                success=False,
                error=f"timed out after {timeout:.1f}s",
                exit_code=proc.returncode,
            )

        output = stdout.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            return ProcessResult(
                success=False,
                output=output,
                error=f"exit status {proc.returncode}",
                exit_code=proc.returncode,
            )
        return ProcessResult(success=True, output=output, exit_code=0)

    async def _kill_group(self, proc: asyncio.subprocess.Process) -> None:
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass  # group already gone
        try:
            await asyncio.wait_for(proc.wait(), timeout=_REAP_TIMEOUT)
        except asyncio.TimeoutError:
            # A descendant left the group (setsid) and still holds the pipe
            log.warning("process_reap_timeout", pid=proc.pid)
