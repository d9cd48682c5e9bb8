"""
Merit calculation.

merit = quantity x age in days, where age is measured from the oldest
same-address ancestor of each UTXO. There are 144 blocks in a day on average.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from decimal import ROUND_FLOOR, Decimal
from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from slpmerit.ancestry import AncestryWalker, ParentMatcher
from slpmerit.backends.base import LedgerBackend
from slpmerit.config import MeritConfig
from slpmerit.constants import AGE_DECIMALS, BLOCKS_PER_DAY, SATS_PER_COIN
from slpmerit.errors import MeritError, ValidationError
from slpmerit.models import (
    MeritResult,
    NativeUtxo,
    ParentRecord,
    TokenUtxo,
    utxo_list_adapter,
)

_AGE_QUANTUM = Decimal(1).scaleb(-AGE_DECIMALS)


def floor2(value: float | int | Decimal) -> float:
    """Truncate to two decimal places, never rounding up."""
    return float(Decimal(str(value)).quantize(_AGE_QUANTUM, rounding=ROUND_FLOOR))


def age_in_days(current_height: int, effective_height: int) -> float:
    """Block distance converted to days, truncated to two decimals."""
    days = Decimal(current_height - effective_height) / BLOCKS_PER_DAY
    return float(days.quantize(_AGE_QUANTUM, rounding=ROUND_FLOOR))


def token_quantity(utxos: Sequence[TokenUtxo]) -> float:
    """Total token quantity held across token UTXOs."""
    return sum((utxo.token_quantity for utxo in utxos), 0.0)


def validate_utxos(utxos: Any, token_id: str | None = None) -> list[NativeUtxo | TokenUtxo]:
    """
    Check that `utxos` is a sequence of well-formed UTXO records.

    Dicts are validated into models. In token mode every record must be a
    token UTXO.

    Raises:
        ValidationError: On anything else
    """
    if isinstance(utxos, (str, bytes)) or not isinstance(utxos, Sequence):
        raise ValidationError(
            f"utxos must be a sequence of UTXO records, got {type(utxos).__name__}"
        )

    try:
        validated = utxo_list_adapter.validate_python(list(utxos))
    except PydanticValidationError as e:
        raise ValidationError(f"Malformed UTXO record: {e}") from e

    if token_id:
        native = [u.outpoint for u in validated if not isinstance(u, TokenUtxo)]
        if native:
            raise ValidationError(f"Native UTXOs given for token {token_id}: {native}")

    return validated


class MeritCalculator:
    """
    Turns UTXOs into MeritResults.

    When aging is enabled each UTXO's ancestry is walked to find the height its
    tokens first arrived at the address. Walks for different UTXOs are
    independent and run concurrently, up to config.max_concurrent_walks.
    """

    def __init__(
        self,
        backend: LedgerBackend,
        config: MeritConfig | None = None,
        walker: AncestryWalker | None = None,
    ):
        self.backend = backend
        self.config = config or MeritConfig()
        self.walker = walker or AncestryWalker(ParentMatcher(backend), self.config)

    async def compute_merit(
        self,
        utxos: Sequence[NativeUtxo | TokenUtxo | dict[str, Any]],
        address: str,
        token_id: str | None = None,
        aging_enabled: bool | None = None,
        current_height: int | None = None,
    ) -> list[MeritResult]:
        """
        Calculate age and merit for each UTXO.

        Args:
            utxos: UTXOs as returned by UtxoSelector (or equivalent dicts)
            address: Address the UTXOs belong to
            token_id: Token being scored; None scores native coin in whole units
            aging_enabled: Overrides config.aging_enabled
            current_height: Chain tip; fetched from the backend when aging and not given

        Returns:
            One MeritResult per UTXO, in input order

        Raises:
            ValidationError: If utxos is not a sequence of well-formed UTXOs
            DataSourceError: If a lookup fails (unless tolerate_walk_errors is set)
        """
        records = validate_utxos(utxos, token_id)
        aging = self.config.aging_enabled if aging_enabled is None else aging_enabled
        address = self.backend.normalize_address(address)

        if not aging:
            return [self._result(utxo, token_id, age_days=0.0, aging=False) for utxo in records]

        if not records:
            return []

        if current_height is None:
            current_height = await self.backend.get_block_height()

        walks = await self._walk_all(records, address)

        results = []
        for utxo, (ancestor, failed) in zip(records, walks, strict=True):
            if failed or utxo.block_height == 0:
                # Unconfirmed UTXOs have not aged yet
                age = 0.0
            else:
                height = ancestor.block_height if ancestor is not None else utxo.block_height
                age = age_in_days(current_height, height)
            results.append(
                self._result(utxo, token_id, age_days=age, aging=True, ancestor=ancestor)
            )

        return results

    def _result(
        self,
        utxo: NativeUtxo | TokenUtxo,
        token_id: str | None,
        age_days: float,
        aging: bool,
        ancestor: ParentRecord | None = None,
    ) -> MeritResult:
        if token_id and isinstance(utxo, TokenUtxo):
            merit = utxo.token_quantity
        else:
            merit = utxo.native_value / SATS_PER_COIN

        if aging:
            merit = merit * age_days

        result = MeritResult(utxo=utxo, age_days=age_days, merit=merit, ancestor=ancestor)
        if self.config.verbose_logging:
            logger.debug(f"{utxo.outpoint}: age={age_days} days, merit={merit}")
        return result

    async def _walk_all(
        self, utxos: list[NativeUtxo | TokenUtxo], address: str
    ) -> list[tuple[ParentRecord | None, bool]]:
        semaphore = asyncio.Semaphore(self.config.max_concurrent_walks)
        tasks = [asyncio.create_task(self._walk(utxo, address, semaphore)) for utxo in utxos]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            # Fail fast: stop the sibling walks before propagating
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _walk(
        self, utxo: NativeUtxo | TokenUtxo, address: str, semaphore: asyncio.Semaphore
    ) -> tuple[ParentRecord | None, bool]:
        """Returns (oldest ancestor, walk failed)."""
        if utxo.block_height == 0:
            return None, False

        async with semaphore:
            try:
                return await self.walker.oldest_ancestor(utxo.txid, address), False
            except MeritError as e:
                if not self.config.tolerate_walk_errors:
                    logger.error(f"Ancestry walk failed for {utxo.outpoint}: {e}")
                    raise
                logger.warning(f"Ancestry walk failed for {utxo.outpoint}, counting age 0: {e}")
                return None, True
