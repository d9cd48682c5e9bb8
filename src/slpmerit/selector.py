"""
UTXO selection for merit calculation.
"""

from __future__ import annotations

from loguru import logger

from slpmerit.backends.base import LedgerBackend
from slpmerit.config import MeritConfig
from slpmerit.models import NativeUtxo, TokenUtxo


class UtxoSelector:
    """
    Fetches an address's UTXOs and keeps the ones that count towards merit.

    With a token id, only outputs carrying that token are kept. Without one,
    only plain native-coin outputs are kept.
    """

    def __init__(self, backend: LedgerBackend, config: MeritConfig | None = None):
        self.backend = backend
        self.config = config or MeritConfig()

    async def select_utxos(
        self, address: str, token_id: str | None = None
    ) -> list[NativeUtxo] | list[TokenUtxo]:
        """
        Get the UTXOs of an address relevant to a token (or to the native coin).

        Args:
            address: Address in any supported format
            token_id: Token to select; None selects native-coin UTXOs

        Returns:
            Matching UTXOs, in backend order

        Raises:
            AddressFormatError: If the address is malformed
            DataSourceError: If the UTXO set cannot be fetched
        """
        address = self.backend.normalize_address(address)
        utxo_set = await self.backend.get_utxos(address)

        if self.config.verbose_logging:
            logger.debug(f"UTXO set for {address}: {utxo_set}")

        if not token_id:
            selected: list = list(utxo_set.native)
        elif self.config.legacy_token_match:
            # Containment rather than equality, as older merit tooling did
            selected = [u for u in utxo_set.token_utxos if token_id in u.token_id]
        else:
            selected = list(utxo_set.tokens.get(token_id, []))

        logger.debug(
            f"Selected {len(selected)} of {len(utxo_set)} UTXOs for {address} "
            f"(token={token_id or 'native'})"
        )
        return selected
