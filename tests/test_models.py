"""
Tests for slpmerit.models
"""

from __future__ import annotations

from collections.abc import Callable

import pytest
from pydantic import ValidationError

from slpmerit.models import (
    MeritReport,
    MeritResult,
    NativeUtxo,
    TokenUtxo,
    TransactionRecord,
    utxo_list_adapter,
)


class TestUtxoVariants:
    """Tests for the native/token tagged variant."""

    def test_native_utxo(self, txid: Callable[[int], str]) -> None:
        utxo = NativeUtxo(txid=txid(1), output_index=0, block_height=665504, native_value=1000)
        assert utxo.kind == "native"
        assert utxo.outpoint == f"{txid(1)}:0"

    def test_token_utxo_defaults_to_dust_value(self, make_token_utxo) -> None:
        utxo = make_token_utxo(2, 0, 5)
        assert utxo.kind == "token"
        assert utxo.native_value == 546
        assert utxo.token_quantity == 5.0

    def test_token_utxo_requires_token_fields(self, txid: Callable[[int], str]) -> None:
        with pytest.raises(ValidationError):
            TokenUtxo(txid=txid(2), output_index=1, block_height=0)  # type: ignore[call-arg]

    def test_negative_height_rejected(self, txid: Callable[[int], str]) -> None:
        with pytest.raises(ValidationError):
            NativeUtxo(txid=txid(1), output_index=0, block_height=-1, native_value=1)

    def test_utxos_are_frozen(self, txid: Callable[[int], str]) -> None:
        utxo = NativeUtxo(txid=txid(1), output_index=0, block_height=1, native_value=1)
        with pytest.raises(ValidationError):
            utxo.block_height = 5

    def test_discriminated_list_parsing(self, token_id: str, txid: Callable[[int], str]) -> None:
        utxos = utxo_list_adapter.validate_python(
            [
                {
                    "kind": "native",
                    "txid": txid(1),
                    "output_index": 0,
                    "block_height": 10,
                    "native_value": 600,
                },
                {
                    "kind": "token",
                    "txid": txid(2),
                    "output_index": 1,
                    "block_height": 11,
                    "token_id": token_id,
                    "token_quantity": "12.5",
                },
            ]
        )
        assert isinstance(utxos[0], NativeUtxo)
        assert isinstance(utxos[1], TokenUtxo)
        assert utxos[1].token_quantity == 12.5

    def test_unknown_kind_rejected(self, txid: Callable[[int], str]) -> None:
        with pytest.raises(ValidationError):
            utxo_list_adapter.validate_python([{"kind": "nft", "txid": txid(1)}])


class TestTransactionRecord:
    def test_defaults(self, txid: Callable[[int], str]) -> None:
        record = TransactionRecord(txid=txid(3))
        assert record.token_id is None
        assert record.is_valid_token_tx is False
        assert record.inputs == ()


class TestMeritReport:
    def test_totals_token_mode(self, make_token_utxo, cash_address: str, token_id: str) -> None:
        utxos = [make_token_utxo(i, 1, q) for i, q in enumerate([10, 20])]
        report = MeritReport(
            address=cash_address,
            token_id=token_id,
            results=[
                MeritResult(utxo=utxos[0], age_days=1.5, merit=15.0),
                MeritResult(utxo=utxos[1], age_days=2.0, merit=40.0),
            ],
        )
        assert report.total_merit == 55.0
        assert report.total_quantity == 30.0

    def test_totals_native_mode(self, cash_address: str, txid: Callable[[int], str]) -> None:
        utxo = NativeUtxo(txid=txid(1), output_index=0, block_height=1, native_value=250_000_000)
        report = MeritReport(address=cash_address, results=[MeritResult(utxo=utxo, merit=2.5)])
        assert report.total_quantity == 2.5

    def test_empty_report(self, cash_address: str) -> None:
        report = MeritReport(address=cash_address)
        assert report.total_merit == 0
        assert report.model_dump()["total_merit"] == 0
