"""Verification paths offered by a sign-in attempt."""

from typing import Optional

from .common import Resource
from .strategy import FactorStrategy


class Factor(Resource):
    """One verification path for a sign-in step.

    ``safe_identifier`` is the masked identifier (e.g. ``j***@example.com``) the
    factor is bound to. Factors are immutable and compare by value.
    """

    strategy: FactorStrategy
    email_address_id: Optional[str] = None
    phone_number_id: Optional[str] = None
    web3_wallet_id: Optional[str] = None
    safe_identifier: Optional[str] = None
    primary: Optional[bool] = None
    default: Optional[bool] = None
