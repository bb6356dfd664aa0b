"""Webhook event models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PushEvent:
    project_name: str
    clone_url: str
