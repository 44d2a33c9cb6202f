"""Synthetic key, value and member generation."""

from __future__ import annotations

import random
import uuid

from ..config import MAX_FANOUT, MAX_VALUE, MIN_FANOUT


def make_key(op_name: str, budget: int) -> str:
    """Return ``<op>-<index>`` with index drawn uniformly from ``[0, budget)``.

    Runs sharing a budget land on the same key namespace, so the density of
    distinct keys stays stable across runs.
    """
    return f"{op_name}-{random.randrange(budget):020d}"


def make_value(width: int = 15) -> str:
    """Bounded random draw, zero-padded to *width* characters."""
    return f"{random.randrange(MAX_VALUE):0{width}d}"


def make_score() -> float:
    return float(random.randrange(MAX_VALUE))


def make_member() -> str:
    """Collision-resistant token for fields/members unique within a key."""
    return uuid.uuid4().hex


def fanout() -> int:
    """Number of elements a container operation touches per call."""
    return random.randint(MIN_FANOUT, MAX_FANOUT)


def score_range() -> tuple[int, int]:
    """Random ``(min, max)`` pair for score-range queries."""
    a, b = random.randrange(MAX_VALUE), random.randrange(MAX_VALUE)
    return (a, b) if a <= b else (b, a)
