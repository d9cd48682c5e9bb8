"""
Bitcoin Cash and merit calculation constants.
"""

from __future__ import annotations

# Average number of blocks mined per day (10 minute target spacing)
BLOCKS_PER_DAY = 144

# Smallest denomination per whole coin
SATS_PER_COIN = 100_000_000

# Decimal places kept when truncating an age in days
AGE_DECIMALS = 2

# Token id of the PSF token, the usual stake for merit
PSF_TOKEN_ID = "38e97c5d7d3585a2cbf3f9580c82ca33985f9cb0845d4dcce220cb709f9538b0"

# The consumer-api only serves the most recent entries of an address history
CONSUMER_API_HISTORY_LIMIT = 100
