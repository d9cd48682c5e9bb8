"""
PSF consumer-api (free-bch) ledger backend.

Talks JSON over HTTP to a consumer-api instance, the same service the
minimal-slp-wallet 'consumer-api' interface uses. UTXOs come back hydrated
with SLP token data, so no separate token lookup is needed.

Note: the consumer-api clips address history to the most recent 100 entries.
Token parents older than that are not found, so merit computed through this
backend can be lower than through a full-history indexer.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Sequence
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from slpmerit.backends.base import LedgerBackend, UtxoSet
from slpmerit.constants import CONSUMER_API_HISTORY_LIMIT
from slpmerit.errors import DataSourceError
from slpmerit.models import HistoryEntry, NativeUtxo, TokenUtxo, TransactionRecord, TxInput

DEFAULT_API_URL = "https://free-bch.fullstack.cash"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY = 0.5

# Status codes worth retrying; everything else in 4xx fails immediately
RETRYABLE_STATUS = {429, 500, 502, 503, 504}

UTXOS_ENDPOINT = "bch/utxos"
TX_DATA_ENDPOINT = "bch/getTxData"
TX_HISTORY_ENDPOINT = "bch/txHistory"
BLOCK_HEIGHT_ENDPOINT = "bch/blockHeight"


def _txid(data: dict[str, Any]) -> str:
    return data.get("tx_hash") or data["txid"]


def _vout(data: dict[str, Any]) -> int:
    return int(data["tx_pos"] if "tx_pos" in data else data["vout"])


def _token_quantity(data: dict[str, Any]) -> float:
    if "tokenQty" in data:
        return float(data["tokenQty"])
    if "qtyStr" in data:
        return float(data["qtyStr"])
    # Raw base units, scaled by the token's decimals
    return int(data["qty"]) / 10 ** int(data.get("decimals", 0))


def parse_utxos(data: Any) -> UtxoSet:
    """Convert a bch/utxos response body into a UtxoSet."""
    if isinstance(data, list):
        data = data[0] if data else {}

    utxo_set = UtxoSet()
    for item in data.get("bchUtxos", []):
        utxo_set.native.append(
            NativeUtxo(
                txid=_txid(item),
                output_index=_vout(item),
                block_height=max(int(item.get("height", 0)), 0),
                native_value=int(item["value"]),
            )
        )

    tokens = data.get("slpUtxos", {}).get("type1", {}).get("tokens", [])
    for item in tokens:
        utxo = TokenUtxo(
            txid=_txid(item),
            output_index=_vout(item),
            block_height=max(int(item.get("height", 0)), 0),
            native_value=int(item.get("value", 546)),
            token_id=item["tokenId"],
            token_quantity=_token_quantity(item),
        )
        utxo_set.tokens.setdefault(utxo.token_id, []).append(utxo)

    return utxo_set


def parse_transaction(data: dict[str, Any]) -> TransactionRecord:
    """Convert one bch/getTxData element into a TransactionRecord."""
    return TransactionRecord(
        txid=data["txid"],
        token_id=data.get("tokenId"),
        is_valid_token_tx=bool(data.get("isValidSlp", False)),
        inputs=tuple(
            TxInput(txid=vin["txid"], output_index=int(vin["vout"]))
            for vin in data.get("vin", [])
            # Coinbase inputs spend nothing
            if "txid" in vin
        ),
    )


def parse_history(data: Any) -> list[HistoryEntry]:
    """Convert a bch/txHistory response body into history entries."""
    if isinstance(data, dict):
        data = data.get("transactions", [])
    return [
        HistoryEntry(txid=_txid(item), block_height=int(item.get("height", 0))) for item in data
    ]


class ConsumerApiBackend(LedgerBackend):
    """
    Ledger backend using the PSF consumer-api REST interface.

    Retries transport errors, timeouts and 429/5xx responses with exponential
    backoff; other failures surface as DataSourceError straight away.
    """

    history_window = CONSUMER_API_HISTORY_LIMIT

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def _api_call(
        self,
        method: str,
        endpoint: str,
        data: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make an API call to the consumer-api, retrying transient failures.

        Raises:
            DataSourceError: When the call fails permanently or retries run out
        """
        if method not in ("GET", "POST"):
            raise ValueError(f"Unsupported HTTP method: {method}")

        url = f"{self.base_url}/{endpoint}"
        attempts = self.max_retries + 1

        for attempt in range(attempts):
            try:
                if method == "GET":
                    response = await self.client.get(url)
                else:
                    response = await self.client.post(url, json=data)

                response.raise_for_status()
                return response.json()

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status not in RETRYABLE_STATUS or attempt == attempts - 1:
                    logger.error(f"consumer-api call failed: {endpoint} - HTTP {status}")
                    raise DataSourceError(f"{endpoint} returned HTTP {status}") from e
                reason = f"HTTP {status}"

            except httpx.TransportError as e:
                if attempt == attempts - 1:
                    logger.error(f"consumer-api call failed: {endpoint} - {e}")
                    raise DataSourceError(f"{endpoint} failed: {e}") from e
                reason = type(e).__name__

            except ValueError as e:
                # Undecodable JSON body
                logger.error(f"consumer-api returned invalid JSON: {endpoint} - {e}")
                raise DataSourceError(f"{endpoint} returned invalid JSON") from e

            delay = self.retry_base_delay * (2**attempt) + random.uniform(0, 0.1)
            logger.debug(
                f"{endpoint} failed ({reason}), retrying in {delay:.2f}s "
                f"(attempt {attempt + 1}/{attempts})"
            )
            await asyncio.sleep(delay)

        raise DataSourceError(f"{endpoint} failed after {attempts} attempts")

    async def get_utxos(self, address: str) -> UtxoSet:
        data = await self._api_call("POST", UTXOS_ENDPOINT, {"address": address})
        try:
            utxo_set = parse_utxos(data)
        except (KeyError, TypeError, ValueError, AttributeError, PydanticValidationError) as e:
            raise DataSourceError(f"Unexpected UTXO response for {address}: {e}") from e

        logger.debug(
            f"Fetched {len(utxo_set.native)} native and "
            f"{len(utxo_set.token_utxos)} token UTXOs for {address}"
        )
        return utxo_set

    async def get_transactions(self, txids: Sequence[str]) -> list[TransactionRecord]:
        data = await self._api_call("POST", TX_DATA_ENDPOINT, {"txids": list(txids)})
        try:
            records = [parse_transaction(item) for item in data]
        except (KeyError, TypeError, ValueError, PydanticValidationError) as e:
            raise DataSourceError(f"Unexpected transaction response: {e}") from e

        if len(records) != len(txids):
            raise DataSourceError(f"Requested {len(txids)} transactions, got {len(records)}")
        return records

    async def get_transaction_history(self, address: str) -> list[HistoryEntry]:
        data = await self._api_call("POST", TX_HISTORY_ENDPOINT, {"address": address})
        try:
            return parse_history(data)
        except (KeyError, TypeError, ValueError, AttributeError, PydanticValidationError) as e:
            raise DataSourceError(f"Unexpected history response for {address}: {e}") from e

    async def get_block_height(self) -> int:
        data = await self._api_call("GET", BLOCK_HEIGHT_ENDPOINT)
        try:
            if isinstance(data, dict):
                data = data["blockHeight"]
            return int(data)
        except (KeyError, TypeError, ValueError) as e:
            raise DataSourceError(f"Unexpected block height response: {e}") from e

    async def close(self) -> None:
        await self.client.aclose()
