"""SHA-256 fingerprints for document change detection"""

import hashlib
import json

from quizdraft.core.models import QuizDocument


def sha256(content: str) -> str:
    """Return hex-encoded SHA-256 hash of content (64 chars)."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def fingerprint(document: QuizDocument) -> str:
    """Hash of the canonical JSON of steps and outcomes; equal documents hash equal."""
    payload = document.model_dump(mode="json")
    return sha256(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))
