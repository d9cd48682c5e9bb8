"""
slpmerit - token merit scoring for SLP / Bitcoin Cash addresses

merit = token quantity x token age (days), where age follows each UTXO back to
its oldest ancestor held by the same address.
"""

__version__ = "0.1.0"

from slpmerit.aggregator import MeritAggregator
from slpmerit.ancestry import AncestryWalker, ParentMatcher
from slpmerit.backends import ConsumerApiBackend, InMemoryBackend, LedgerBackend, UtxoSet
from slpmerit.calculator import MeritCalculator, age_in_days, floor2, token_quantity
from slpmerit.config import MeritConfig, Settings, get_settings
from slpmerit.errors import (
    AddressFormatError,
    AncestryDepthError,
    DataSourceError,
    MeritError,
    ValidationError,
)
from slpmerit.models import (
    HistoryEntry,
    MeritReport,
    MeritResult,
    NativeUtxo,
    ParentRecord,
    TokenUtxo,
    TransactionRecord,
    TxInput,
)
from slpmerit.selector import UtxoSelector

__all__ = [
    "AddressFormatError",
    "AncestryDepthError",
    "AncestryWalker",
    "ConsumerApiBackend",
    "DataSourceError",
    "HistoryEntry",
    "InMemoryBackend",
    "LedgerBackend",
    "MeritAggregator",
    "MeritCalculator",
    "MeritConfig",
    "MeritError",
    "MeritReport",
    "MeritResult",
    "NativeUtxo",
    "ParentMatcher",
    "ParentRecord",
    "Settings",
    "TokenUtxo",
    "TransactionRecord",
    "TxInput",
    "UtxoSelector",
    "UtxoSet",
    "ValidationError",
    "age_in_days",
    "floor2",
    "get_settings",
    "token_quantity",
]
