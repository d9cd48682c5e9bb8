"""
Token provenance walking.

Moving tokens between outputs of the same address must not reset their age.
ParentMatcher finds, for one transaction, the input that spent a same-address,
same-token output. AncestryWalker follows those parents backward until the
trail ends, yielding the oldest ancestor the address can still claim.

Parents are located through the address's transaction history. If the ledger
backend serves a bounded history window, ancestors that fall outside it are
invisible and the walk stops early, so the resulting age is a lower bound.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from loguru import logger

from slpmerit.backends.base import LedgerBackend
from slpmerit.config import MeritConfig
from slpmerit.errors import AncestryDepthError
from slpmerit.models import HistoryEntry, ParentRecord


class ParentMatcher:
    """Finds the same-address, same-token parent output of a transaction."""

    def __init__(self, backend: LedgerBackend):
        self.backend = backend

    async def resolve_parent(self, txid: str, address: str) -> ParentRecord | None:
        """
        Find the input of `txid` that spent a token output of `address`.

        Each input of the transaction is a candidate. A candidate is a valid
        parent when its transaction appears in the address history, carries the
        same token id as the child, and is a valid token transaction. When
        several candidates are valid, the last one in input order wins.

        Args:
            txid: Child transaction id
            address: Normalized address the tokens must originate from

        Returns:
            The parent output, or None if no input qualifies
        """
        child = (await self.backend.get_transactions([txid]))[0]
        history = await self.backend.get_transaction_history(address)

        parent: ParentRecord | None = None
        for candidate in child.inputs:
            matches = [entry for entry in history if entry.txid == candidate.txid]
            for match in matches:
                record = (await self.backend.get_transactions([match.txid]))[0]
                if record.is_valid_token_tx and record.token_id == child.token_id:
                    parent = ParentRecord(
                        txid=match.txid,
                        output_index=candidate.output_index,
                        block_height=match.block_height,
                    )

        if parent is not None:
            logger.debug(f"Parent of {txid}: {parent.txid}:{parent.output_index}")
        elif self.history_clipped(history):
            logger.debug(
                f"No parent of {txid} in the {len(history)} most recent history entries; "
                f"older ancestors of {address} are not visible"
            )
        return parent

    def history_clipped(self, history: list[HistoryEntry]) -> bool:
        """Whether the backend may have dropped older entries from `history`."""
        window = self.backend.history_window
        return window is not None and len(history) >= window


class AncestryWalker:
    """
    Follows token parents back to the oldest ancestor held by the same address.

    Args:
        matcher: Parent matcher used for each step
        config: Supplies the hop limit and pacing delay
        sleep: Awaitable used for pacing between lookups
    """

    def __init__(
        self,
        matcher: ParentMatcher,
        config: MeritConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.matcher = matcher
        self.config = config or MeritConfig()
        self._sleep = sleep

    async def oldest_ancestor(self, start_txid: str, address: str) -> ParentRecord | None:
        """
        Walk the token DAG backward from `start_txid`.

        Returns:
            The oldest traceable same-address ancestor, or None if the
            transaction has no such parent

        Raises:
            AncestryDepthError: If the walk exceeds config.max_hops parents
        """
        oldest: ParentRecord | None = None
        txid = start_txid
        hops = 0

        while True:
            if hops and self.config.pacing_delay:
                await self._sleep(self.config.pacing_delay)

            parent = await self.matcher.resolve_parent(txid, address)
            if parent is None:
                break

            hops += 1
            if self.config.max_hops is not None and hops > self.config.max_hops:
                raise AncestryDepthError(start_txid, self.config.max_hops)

            oldest = parent
            txid = parent.txid

        if oldest is not None:
            logger.debug(
                f"Oldest ancestor of {start_txid} after {hops} hop(s): "
                f"{oldest.txid} at height {oldest.block_height}"
            )
        return oldest
