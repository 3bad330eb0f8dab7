"""Verified identity assertion handed over by the identity provider."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class IdentityAssertion:
    """What the identity provider vouches for about the caller.

    ``email`` and ``phone`` are only set when the provider itself verified
    them, so they count as proof of ownership during reconciliation.
    """

    subject_id: str
    email: str | None = None
    phone: str | None = None
    display_name: str | None = None
    role: str | None = None
