"""
Test fixtures and configuration.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from slpmerit.backends.memory import InMemoryBackend
from slpmerit.constants import PSF_TOKEN_ID
from slpmerit.models import HistoryEntry, TokenUtxo, TransactionRecord, TxInput


def _txid(n: int) -> str:
    return f"{n:064x}"


@pytest.fixture
def txid() -> Callable[[int], str]:
    """Deterministic 64-hex txid for a small integer."""
    return _txid


@pytest.fixture
def cash_address() -> str:
    return "bitcoincash:qz9l5w0fvp670a8r48apsv0xqek840320cf5czgcmk"


@pytest.fixture
def slp_address() -> str:
    """The same P2PKH hash as cash_address, in simpleledger form."""
    return "simpleledger:qz9l5w0fvp670a8r48apsv0xqek840320c90neac9g"


@pytest.fixture
def other_address() -> str:
    return "bitcoincash:qpm2qsznhks23z7629mms6s4cwef74vcwvy22gdx6a"


@pytest.fixture
def token_id() -> str:
    return PSF_TOKEN_ID


@pytest.fixture
def other_token_id() -> str:
    return "c" * 64


@pytest.fixture
def make_token_utxo(token_id: str) -> Callable[..., TokenUtxo]:
    """Token UTXO at output 1 of txid(n)."""

    def _make(n: int, height: int, quantity: float) -> TokenUtxo:
        return TokenUtxo(
            txid=_txid(n),
            output_index=1,
            block_height=height,
            token_id=token_id,
            token_quantity=quantity,
        )

    return _make


@pytest.fixture
def make_chain(cash_address: str, token_id: str) -> Callable[..., InMemoryBackend]:
    """
    Build a backend holding one token UTXO at the tip of a linear ancestry chain.

    Transaction txid(0) holds the UTXO. Each txid(i) spends output 1 of
    txid(i + 1), down to txid(depth), which spends an output of a foreign
    address. Heights decrease by `spacing` blocks per hop from `tip_height`.
    """

    def _make(
        depth: int,
        tip_height: int = 700_000,
        spacing: int = 144,
        block_height: int = 700_100,
        quantity: float = 100.0,
        history_window: int | None = None,
    ) -> InMemoryBackend:
        foreign = "f" * 64
        transactions = []
        history = []
        for i in range(depth + 1):
            spends = _txid(i + 1) if i < depth else foreign
            transactions.append(
                TransactionRecord(
                    txid=_txid(i),
                    token_id=token_id,
                    is_valid_token_tx=True,
                    inputs=(TxInput(txid=spends, output_index=1),),
                )
            )
            history.append(HistoryEntry(txid=_txid(i), block_height=tip_height - i * spacing))

        utxo = TokenUtxo(
            txid=_txid(0),
            output_index=1,
            block_height=tip_height,
            token_id=token_id,
            token_quantity=quantity,
        )
        return InMemoryBackend(
            utxos={cash_address: [utxo]},
            transactions=transactions,
            history={cash_address: history},
            block_height=block_height,
            history_window=history_window,
        )

    return _make
