"""Transfer rail abstraction: how finalized requests pay their recipients.

The campaign state machine never moves value itself. It validates a
payout, hands it to a TransferRail, and only records the payout once the
rail returns. A rail either fully succeeds or raises; there is no
partial transfer.

Adding a settlement backend = implement the TransferRail Protocol.
Zero changes to campaign logic.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol, runtime_checkable

from crowdfund.identity import normalize_identity


@runtime_checkable
class TransferRail(Protocol):
    """Contract for anything that can pay a recipient.

    transfer() must be all-or-nothing: on any failure it raises and no
    value has moved.
    """

    @property
    def rail_id(self) -> str:
        """Unique identifier (e.g., 'ledger', 'eth_mainnet')."""
        ...

    def transfer(self, recipient: str, amount: int, reference: str = "") -> None:
        """Pay amount to recipient or raise.

        reference identifies the payout (campaign ID and request index)
        so settlements can be matched back to requests.
        """
        ...


@dataclass(frozen=True)
class TransferRecord:
    """A single completed transfer. Immutable once recorded."""
    recipient: str
    amount: int
    reference: str
    transferred_utc: datetime


class LedgerRail:
    """In-memory account ledger: the native balance of every address.

    Recipients' balances grow as requests are finalized. Addresses may be
    seeded with an opening balance (fund) so that external balances can
    be compared before and after a payout.

    One rail is shared by every campaign in a registry, and campaigns
    only lock themselves, so the rail serializes its own mutations.

    Usage:
        rail = LedgerRail()
        rail.fund("0xabc...", 10**18)
        rail.transfer("0xabc...", 5 * 10**17, reference="campaign_1:0")
        rail.balance_of("0xabc...")
    """

    def __init__(self, rail_id: str = "ledger") -> None:
        self._rail_id = rail_id
        self._balances: Dict[str, int] = {}
        self._transfers: List[TransferRecord] = []
        self._frozen: set[str] = set()
        self._lock = threading.Lock()

    @property
    def rail_id(self) -> str:
        return self._rail_id

    def fund(self, address: str, amount: int) -> None:
        """Seed an address with an opening balance."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise ValueError(f"Opening balance must be a non-negative integer, got {amount!r}")
        addr = normalize_identity(address)
        with self._lock:
            self._balances[addr] = self._balances.get(addr, 0) + amount

    def freeze(self, address: str) -> None:
        """Refuse all future transfers to this address."""
        addr = normalize_identity(address)
        with self._lock:
            self._frozen.add(addr)

    def transfer(
        self,
        recipient: str,
        amount: int,
        reference: str = "",
        now: Optional[datetime] = None,
    ) -> None:
        """Credit recipient with amount.

        Raises:
            ValueError: If amount is not positive or recipient is frozen.
        """
        if amount <= 0:
            raise ValueError(f"Transfer amount must be positive, got {amount}")
        addr = normalize_identity(recipient)
        if now is None:
            now = datetime.now(timezone.utc)
        with self._lock:
            if addr in self._frozen:
                raise ValueError(f"Recipient {addr} cannot receive transfers")
            self._balances[addr] = self._balances.get(addr, 0) + amount
            self._transfers.append(
                TransferRecord(
                    recipient=addr,
                    amount=amount,
                    reference=reference,
                    transferred_utc=now,
                )
            )

    def balance_of(self, address: str) -> int:
        addr = normalize_identity(address)
        with self._lock:
            return self._balances.get(addr, 0)

    def get_transfers(self) -> list[TransferRecord]:
        with self._lock:
            return list(self._transfers)

    @property
    def total_transferred(self) -> int:
        with self._lock:
            return sum(t.amount for t in self._transfers)
