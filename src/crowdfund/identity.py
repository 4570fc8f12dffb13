"""Identity handling: callers, managers and recipients are Ethereum addresses.

Authentication happens upstream; the core only receives an address it
trusts. What the core does own is the canonical form: every identity is
stored in EIP-55 checksum form so that "0xabc..." and "0xABC..." are the
same contributor and cannot vote twice.
"""

from __future__ import annotations

from eth_account import Account
from web3 import Web3

from crowdfund.errors import InvalidIdentity


def normalize_identity(identity: str) -> str:
    """Return the checksum form of an address.

    Raises:
        InvalidIdentity: If identity is not a 20-byte hex address.
    """
    if not isinstance(identity, str) or not identity.strip():
        raise InvalidIdentity(f"Identity must be a non-empty address, got {identity!r}")
    candidate = identity.strip()
    if not Web3.is_address(candidate):
        raise InvalidIdentity(f"Not a valid address: {candidate}")
    return Web3.to_checksum_address(candidate)


def new_identity() -> tuple[str, str]:
    """Generate a fresh account.

    Returns:
        Tuple of (checksum address, hex private key).
    """
    acct = Account.create()
    return acct.address, acct.key.hex()
