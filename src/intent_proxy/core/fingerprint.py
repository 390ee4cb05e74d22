"""Intent fingerprints used as cache keys."""

from __future__ import annotations

import hashlib


def normalise_intent(intent: str) -> str:
    return intent.strip().lower()


def intent_fingerprint(intent: str) -> str:
    """Return a stable exact-match key for ``intent``.

    Only surrounding whitespace and letter case are normalised; any other
    difference in wording yields a different fingerprint.
    """

    return hashlib.sha256(normalise_intent(intent).encode("utf-8")).hexdigest()


__all__ = ["intent_fingerprint", "normalise_intent"]
