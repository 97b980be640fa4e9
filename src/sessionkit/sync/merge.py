"""Merge policy for received sync contexts.

Pure functions, independent of any transport. Each field of a received context
is merged on its own:

- device token: on the first-ever sync the primary device's value wins; after
  that the last writer wins (the field carries no timestamp)
- client: accepted when strictly newer on the primary, newer or equal on the
  companion, so the primary keeps its own value on exact ties
- environment: always accepted
"""

from enum import Enum
from typing import NamedTuple, Optional

from ..models import Client, Environment


class DeviceRole(str, Enum):
    PRIMARY = 'primary'
    COMPANION = 'companion'


class MergeResult(NamedTuple):
    accepted: bool
    value: object


def merge_device_token(
    role: DeviceRole, local: Optional[str], received: Optional[str], has_synced: bool
) -> MergeResult:
    """Merge a received device token.

    Args:
        role: Role of the receiving device
        local: Token currently stored on the receiving device
        received: Token in the received context
        has_synced: Whether a token sync has ever completed on this device

    Returns:
        MergeResult whose value is the token to keep
    """
    if received is None:
        return MergeResult(False, local)

    if not has_synced and role is DeviceRole.PRIMARY and local is not None:
        return MergeResult(False, local)

    return MergeResult(received != local, received)


def merge_client(
    role: DeviceRole, local: Optional[Client], received: Optional[Client], signed_out: bool = False
) -> MergeResult:
    """Merge a received client.

    Args:
        role: Role of the receiving device
        local: Client currently held by the receiving device
        received: Client in the received context
        signed_out: True when the context carried the empty-client sentinel

    Returns:
        MergeResult whose value is the client to keep
    """
    if signed_out:
        # Only the companion mirrors a sign-out; the primary is authoritative for its own client
        if role is DeviceRole.COMPANION and local is not None:
            return MergeResult(True, None)
        return MergeResult(False, local)

    if received is None:
        return MergeResult(False, local)
    if local is None:
        return MergeResult(True, received)

    if role is DeviceRole.PRIMARY:
        newer = received.updated_at > local.updated_at
    else:
        newer = received.updated_at >= local.updated_at

    return MergeResult(newer, received if newer else local)


def merge_environment(local: Environment, received: Optional[Environment]) -> MergeResult:
    if received is None:
        return MergeResult(False, local)
    return MergeResult(True, received)
