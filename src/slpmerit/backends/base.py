"""
Base ledger backend interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field

from slpmerit.address import to_cash_address
from slpmerit.models import HistoryEntry, NativeUtxo, TokenUtxo, TransactionRecord


@dataclass
class UtxoSet:
    """All UTXOs held by an address, split into native and per-token outputs."""

    native: list[NativeUtxo] = field(default_factory=list)
    tokens: dict[str, list[TokenUtxo]] = field(default_factory=dict)

    @property
    def token_utxos(self) -> list[TokenUtxo]:
        return [utxo for utxos in self.tokens.values() for utxo in utxos]

    def __len__(self) -> int:
        return len(self.native) + len(self.token_utxos)


class LedgerBackend(ABC):
    """
    Abstract ledger data source.

    Implementations own network access, retries and backoff. They raise
    DataSourceError on any retrieval failure.

    get_transaction_history() may be bounded to a window of recent entries.
    Ancestors older than the window are invisible to the ancestry walk, so ages
    computed against a windowed backend are lower bounds.
    """

    # Most recent history entries served; None = full history
    history_window: int | None = None

    @abstractmethod
    async def get_utxos(self, address: str) -> UtxoSet:
        """Get the UTXO set for a normalized address"""

    @abstractmethod
    async def get_transactions(self, txids: Sequence[str]) -> list[TransactionRecord]:
        """Get transaction records, in the order requested"""

    @abstractmethod
    async def get_transaction_history(self, address: str) -> list[HistoryEntry]:
        """Get the transaction history for a normalized address"""

    @abstractmethod
    async def get_block_height(self) -> int:
        """Get current blockchain height"""

    def normalize_address(self, address: str) -> str:
        """
        Normalize an address to canonical CashAddr.

        Raises:
            AddressFormatError: If the address is malformed
        """
        return to_cash_address(address)

    async def close(self) -> None:
        """Close backend connection"""
        pass
