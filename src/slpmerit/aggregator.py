"""
Aggregate merit for an address.
"""

from __future__ import annotations

import asyncio

from loguru import logger

from slpmerit.backends.base import LedgerBackend
from slpmerit.calculator import MeritCalculator
from slpmerit.config import MeritConfig
from slpmerit.errors import ValidationError
from slpmerit.models import MeritReport
from slpmerit.selector import UtxoSelector


class MeritAggregator:
    """
    Entry point: selects an address's UTXOs, scores each one and sums the result.

    Callers scoring many addresses loop over aggregate_merit(); independent calls
    may run concurrently against the same backend.
    """

    def __init__(
        self,
        backend: LedgerBackend,
        config: MeritConfig | None = None,
        selector: UtxoSelector | None = None,
        calculator: MeritCalculator | None = None,
    ):
        self.backend = backend
        self.config = config or MeritConfig()
        self.selector = selector or UtxoSelector(backend, self.config)
        self.calculator = calculator or MeritCalculator(backend, self.config)

    async def calculate(
        self, address: str, token_id: str | None = None, timeout: float | None = None
    ) -> MeritReport:
        """
        Score every relevant UTXO of an address.

        Args:
            address: Address in any supported format
            token_id: Token to score; None scores the native coin
            timeout: Seconds before in-flight lookups are cancelled

        Returns:
            MeritReport with one result per UTXO

        Raises:
            ValidationError: If address is empty
            AddressFormatError: If address is malformed
            DataSourceError: If any ledger lookup fails
            TimeoutError: If timeout elapses first
        """
        if not address:
            raise ValidationError("an address must be specified")

        try:
            if timeout is None:
                return await self._calculate(address, token_id)
            return await asyncio.wait_for(self._calculate(address, token_id), timeout=timeout)
        except Exception as e:
            logger.error(f"Merit calculation failed for {address}: {type(e).__name__}: {e}")
            raise

    async def aggregate_merit(
        self, address: str, token_id: str | None = None, timeout: float | None = None
    ) -> float:
        """Total merit of an address; 0 when it holds no matching UTXOs."""
        report = await self.calculate(address, token_id, timeout=timeout)
        return float(report.total_merit)

    async def _calculate(self, address: str, token_id: str | None) -> MeritReport:
        utxos = await self.selector.select_utxos(address, token_id)
        if self.config.verbose_logging:
            logger.debug(f"Selected UTXOs: {utxos}")

        normalized = self.backend.normalize_address(address)
        current_height = None
        if self.config.aging_enabled and utxos:
            current_height = await self.backend.get_block_height()

        results = await self.calculator.compute_merit(
            utxos,
            normalized,
            token_id,
            aging_enabled=self.config.aging_enabled,
            current_height=current_height,
        )

        report = MeritReport(
            address=normalized,
            token_id=token_id,
            current_height=current_height,
            results=results,
        )
        logger.info(
            f"Merit for {normalized}: {report.total_merit} across {len(results)} UTXO(s)"
        )
        return report
