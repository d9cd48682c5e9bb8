"""
Error types raised by the merit library.
"""

from __future__ import annotations


class MeritError(Exception):
    """Base class for all merit calculation errors."""

    pass


class ValidationError(MeritError):
    """Raised on a missing address or malformed UTXO input."""

    pass


class AddressFormatError(MeritError):
    """Raised when an address cannot be parsed or normalized."""

    pass


class DataSourceError(MeritError):
    """Raised when chain height, UTXOs, transactions or history cannot be fetched."""

    pass


class AncestryDepthError(MeritError):
    """Raised when an ancestry walk exceeds the configured hop limit."""

    def __init__(self, start_txid: str, max_hops: int):
        super().__init__(f"Ancestry walk from {start_txid} exceeded {max_hops} hops")
        self.start_txid = start_txid
        self.max_hops = max_hops
