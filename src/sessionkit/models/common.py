"""Shared base for resource models."""

import time

from pydantic import BaseModel, ConfigDict


class Resource(BaseModel):
    """Immutable value object decoded from the Frontend API.

    Field names match the snake_case wire format, so ``model_dump(mode='json')`` and
    ``model_validate`` round-trip a resource through the cache and the sync channel.
    """

    model_config = ConfigDict(frozen=True, extra='ignore')


def now_ms() -> int:
    """Current time in milliseconds since the epoch (the wire timestamp unit)."""
    return int(time.time() * 1000)
