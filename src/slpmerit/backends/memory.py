"""
In-memory ledger backend.

Serves UTXOs, transactions and address histories from plain Python data or a
JSON snapshot file. Useful for offline analysis of a captured ledger slice and
for reproducing how a history window limits the ancestry walk.

Snapshot format:

    {
      "block_height": 665800,
      "addresses": {
        "bitcoincash:q...": {
          "utxos": [{"kind": "token", "txid": "...", "output_index": 1, ...}],
          "history": [{"txid": "...", "block_height": 665504}]
        }
      },
      "transactions": [
        {"txid": "...", "token_id": "...", "is_valid_token_tx": true,
         "inputs": [{"txid": "...", "output_index": 1}]}
      ]
    }
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from slpmerit.address import to_cash_address
from slpmerit.backends.base import LedgerBackend, UtxoSet
from slpmerit.errors import DataSourceError
from slpmerit.models import (
    HistoryEntry,
    NativeUtxo,
    TokenUtxo,
    TransactionRecord,
    utxo_list_adapter,
)


class InMemoryBackend(LedgerBackend):
    """
    Ledger backend over in-memory data.

    Args:
        utxos: Address -> UTXOs held by it
        transactions: Transaction records, looked up by txid
        history: Address -> transaction history entries
        block_height: Current chain height
        history_window: If set, only the N most recent history entries are served
    """

    def __init__(
        self,
        utxos: dict[str, Iterable[NativeUtxo | TokenUtxo]] | None = None,
        transactions: Iterable[TransactionRecord] = (),
        history: dict[str, Iterable[HistoryEntry]] | None = None,
        block_height: int = 0,
        history_window: int | None = None,
    ):
        if history_window is not None and history_window < 0:
            raise ValueError(f"history_window must be non-negative, got {history_window}")

        self._utxos: dict[str, list[NativeUtxo | TokenUtxo]] = {
            to_cash_address(addr): list(items) for addr, items in (utxos or {}).items()
        }
        self._transactions: dict[str, TransactionRecord] = {tx.txid: tx for tx in transactions}
        self._history: dict[str, list[HistoryEntry]] = {
            to_cash_address(addr): list(items) for addr, items in (history or {}).items()
        }
        self.block_height = block_height
        self.history_window = history_window

    @classmethod
    def from_dict(cls, data: dict[str, Any], history_window: int | None = None) -> InMemoryBackend:
        """Build a backend from a decoded snapshot document."""
        try:
            addresses = data.get("addresses", {})
            utxos = {
                addr: utxo_list_adapter.validate_python(entry.get("utxos", []))
                for addr, entry in addresses.items()
            }
            history = {
                addr: [HistoryEntry.model_validate(h) for h in entry.get("history", [])]
                for addr, entry in addresses.items()
            }
            transactions = [
                TransactionRecord.model_validate(tx) for tx in data.get("transactions", [])
            ]
        except (PydanticValidationError, AttributeError) as e:
            raise DataSourceError(f"Malformed ledger snapshot: {e}") from e

        return cls(
            utxos=utxos,
            transactions=transactions,
            history=history,
            block_height=int(data.get("block_height", 0)),
            history_window=history_window,
        )

    @classmethod
    def from_snapshot(cls, path: Path, history_window: int | None = None) -> InMemoryBackend:
        """Load a backend from a JSON snapshot file."""
        try:
            data = json.loads(Path(path).read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise DataSourceError(f"Failed to read ledger snapshot {path}: {e}") from e

        backend = cls.from_dict(data, history_window=history_window)
        logger.debug(
            f"Loaded snapshot {path}: {len(backend._utxos)} addresses, "
            f"{len(backend._transactions)} transactions, height {backend.block_height}"
        )
        return backend

    async def get_utxos(self, address: str) -> UtxoSet:
        utxo_set = UtxoSet()
        for utxo in self._utxos.get(address, []):
            if isinstance(utxo, TokenUtxo):
                utxo_set.tokens.setdefault(utxo.token_id, []).append(utxo)
            else:
                utxo_set.native.append(utxo)
        return utxo_set

    async def get_transactions(self, txids: Sequence[str]) -> list[TransactionRecord]:
        missing = [txid for txid in txids if txid not in self._transactions]
        if missing:
            raise DataSourceError(f"Unknown transaction(s): {', '.join(missing)}")
        return [self._transactions[txid] for txid in txids]

    async def get_transaction_history(self, address: str) -> list[HistoryEntry]:
        # Newest first; unconfirmed (height <= 0) entries are the newest of all
        entries = sorted(
            self._history.get(address, []),
            key=lambda h: h.block_height if h.block_height > 0 else float("inf"),
            reverse=True,
        )
        if self.history_window is not None:
            entries = entries[: self.history_window]
        return entries

    async def get_block_height(self) -> int:
        return self.block_height
