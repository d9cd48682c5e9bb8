"""
Ledger backend implementations.

Available backends:
- ConsumerApiBackend: PSF consumer-api over HTTP (history clipped to 100 entries)
- InMemoryBackend: in-memory data or a JSON ledger snapshot, optional history window
"""

from slpmerit.backends.base import LedgerBackend, UtxoSet
from slpmerit.backends.consumer_api import ConsumerApiBackend
from slpmerit.backends.memory import InMemoryBackend

__all__ = [
    "ConsumerApiBackend",
    "InMemoryBackend",
    "LedgerBackend",
    "UtxoSet",
]
