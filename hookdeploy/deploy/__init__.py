"""Deployment dispatch: process runner, dispatcher and audit log."""

from .audit import AuditLog
from .dispatcher import DeploymentTask, Dispatcher
from .runner import ProcessResult, ProcessRunner, SubprocessRunner

__all__ = [
    "AuditLog",
    "DeploymentTask",
    "Dispatcher",
    "ProcessResult",
    "ProcessRunner",
    "SubprocessRunner",
]
