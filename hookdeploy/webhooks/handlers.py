"""Webhook signature validation and push payload parsing."""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any

from hookdeploy.webhooks.models import PushEvent

SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="


class PayloadError(ValueError):
    """The request body is not a usable push payload."""


# ---------------------------------------------------------------------------
# Signature validation
# ---------------------------------------------------------------------------

def expected_signature(secret: bytes, body: bytes) -> str:
    return SIGNATURE_PREFIX + hmac.new(secret, body, hashlib.sha256).hexdigest()


def verify_signature(secret: bytes, body: bytes, signature: str | None) -> bool:
    """Validate a GitHub-style HMAC-SHA256 signature over the raw body.

    Returns False for an empty secret or signature, and for anything that
    does not match, including non-ASCII input.
    """
    if not secret:
        return False
    if not signature:
        return False
    expected = expected_signature(secret, body)
    # compare_digest rejects non-ASCII str, so compare as bytes
    return hmac.compare_digest(expected.encode(), signature.encode("utf-8", "replace"))


# ---------------------------------------------------------------------------
# Payload parsing
# ---------------------------------------------------------------------------

def parse_push_event(body: bytes) -> PushEvent:
    """Parse a push payload into a PushEvent with a lowercased project name.

    Raises PayloadError if the body is not JSON or lacks a string
    ``repository.name`` / ``repository.clone_url``.
    """
    try:
        payload: Any = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise PayloadError(f"Invalid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise PayloadError("Payload is not a JSON object")
    repo = payload.get("repository")
    if not isinstance(repo, dict):
        raise PayloadError("Missing repository object")

    name = repo.get("name")
    clone_url = repo.get("clone_url")
    if not isinstance(name, str) or not name:
        raise PayloadError("Missing repository.name")
    if not isinstance(clone_url, str) or not clone_url:
        raise PayloadError("Missing repository.clone_url")

    return PushEvent(project_name=name.lower(), clone_url=clone_url)
