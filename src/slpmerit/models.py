"""
Ledger and result data models using Pydantic for validation.

All models are frozen: ledger facts are read-only snapshots fetched per call,
and merit enrichment produces new MeritResult objects instead of mutating UTXOs.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, computed_field

from slpmerit.constants import SATS_PER_COIN


class NativeUtxo(BaseModel):
    """An unspent output holding only native coin (satoshis)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["native"] = "native"
    txid: str = Field(..., min_length=1)
    output_index: int = Field(..., ge=0)
    block_height: int = Field(..., ge=0)  # 0 = unconfirmed
    native_value: int = Field(..., ge=0)

    @property
    def outpoint(self) -> str:
        return f"{self.txid}:{self.output_index}"


class TokenUtxo(BaseModel):
    """An unspent output carrying a quantity of a fungible token."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["token"] = "token"
    txid: str = Field(..., min_length=1)
    output_index: int = Field(..., ge=0)
    block_height: int = Field(..., ge=0)  # 0 = unconfirmed
    native_value: int = Field(default=546, ge=0)
    token_id: str = Field(..., min_length=1)
    token_quantity: float = Field(..., ge=0)

    @property
    def outpoint(self) -> str:
        return f"{self.txid}:{self.output_index}"


Utxo = Annotated[NativeUtxo | TokenUtxo, Field(discriminator="kind")]

utxo_list_adapter: TypeAdapter[list[NativeUtxo | TokenUtxo]] = TypeAdapter(list[Utxo])


class TxInput(BaseModel):
    """Reference from a transaction input to the output it spends."""

    model_config = ConfigDict(frozen=True)

    txid: str
    output_index: int = Field(..., ge=0)


class TransactionRecord(BaseModel):
    """Read-only view of a transaction as needed for provenance walks."""

    model_config = ConfigDict(frozen=True)

    txid: str
    token_id: str | None = None
    is_valid_token_tx: bool = False
    inputs: tuple[TxInput, ...] = ()


class HistoryEntry(BaseModel):
    """One row of an address's transaction history."""

    model_config = ConfigDict(frozen=True)

    txid: str
    block_height: int


class ParentRecord(BaseModel):
    """A same-address, same-token ancestor output found by the parent matcher."""

    model_config = ConfigDict(frozen=True)

    txid: str
    output_index: int
    block_height: int


class MeritResult(BaseModel):
    """A UTXO with its computed age (days) and merit."""

    model_config = ConfigDict(frozen=True)

    utxo: Utxo
    age_days: float = 0.0
    merit: float = 0.0
    ancestor: ParentRecord | None = None


class MeritReport(BaseModel):
    """Per-UTXO breakdown behind an aggregate merit value."""

    address: str
    token_id: str | None = None
    current_height: int | None = None
    results: list[MeritResult] = Field(default_factory=list)

    @computed_field
    @property
    def total_merit(self) -> float:
        return sum((result.merit for result in self.results), 0.0)

    @computed_field
    @property
    def total_quantity(self) -> float:
        """Token quantity in token mode, whole coins in native mode."""
        if self.token_id:
            from slpmerit.calculator import token_quantity

            return token_quantity([r.utxo for r in self.results if isinstance(r.utxo, TokenUtxo)])
        return sum(r.utxo.native_value for r in self.results) / SATS_PER_COIN
