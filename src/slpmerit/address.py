"""
Bitcoin Cash address normalization.

SLP tokens live on ordinary Bitcoin Cash outputs, so an SLP address
(simpleledger:...), a CashAddr (bitcoincash:...) and a legacy Base58 address
can all name the same output script. Every lookup is done against the
canonical CashAddr form.
"""

from __future__ import annotations

import base58

from slpmerit.errors import AddressFormatError

CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"

# prefix -> network
PREFIX_NETWORKS = {
    "bitcoincash": "mainnet",
    "simpleledger": "mainnet",
    "bchtest": "testnet",
    "slptest": "testnet",
    "bchreg": "regtest",
    "slpreg": "regtest",
}

CASH_PREFIXES = {"mainnet": "bitcoincash", "testnet": "bchtest", "regtest": "bchreg"}
SLP_PREFIXES = {"mainnet": "simpleledger", "testnet": "slptest", "regtest": "slpreg"}

# Base58 version byte -> (network, address type)
LEGACY_VERSIONS = {
    0x00: ("mainnet", "p2pkh"),
    0x05: ("mainnet", "p2sh"),
    0x6F: ("testnet", "p2pkh"),
    0xC4: ("testnet", "p2sh"),
}

TYPE_BITS = {"p2pkh": 0, "p2sh": 1}

# Size bits of the version byte -> hash length in bytes
HASH_SIZES = [20, 24, 28, 32, 40, 48, 56, 64]


def cashaddr_polymod(values: list[int]) -> int:
    """CashAddr BCH checksum polymod (40-bit)"""
    gen = [0x98F2BC8E61, 0x79B76D99E2, 0xF33E5FB3C4, 0xAE2EABE2A8, 0x1E4F43E470]
    chk = 1
    for v in values:
        b = chk >> 35
        chk = ((chk & 0x07FFFFFFFF) << 5) ^ v
        for i in range(5):
            chk ^= gen[i] if ((b >> i) & 1) else 0
    return chk ^ 1


def cashaddr_prefix_expand(prefix: str) -> list[int]:
    """Expand prefix for the checksum: lower 5 bits of each char plus a separator"""
    return [ord(x) & 0x1F for x in prefix] + [0]


def cashaddr_create_checksum(prefix: str, data: list[int]) -> list[int]:
    """Create the 8-symbol CashAddr checksum"""
    polymod = cashaddr_polymod(cashaddr_prefix_expand(prefix) + data + [0] * 8)
    return [(polymod >> 5 * (7 - i)) & 31 for i in range(8)]


def cashaddr_verify_checksum(prefix: str, data: list[int]) -> bool:
    return cashaddr_polymod(cashaddr_prefix_expand(prefix) + data) == 0


def convertbits(data: bytes | list[int], frombits: int, tobits: int, pad: bool = True) -> list[int]:
    """Convert between bit groups"""
    acc = 0
    bits = 0
    ret = []
    maxv = (1 << tobits) - 1
    max_acc = (1 << (frombits + tobits - 1)) - 1

    for value in data:
        acc = ((acc << frombits) | value) & max_acc
        bits += frombits
        while bits >= tobits:
            bits -= tobits
            ret.append((acc >> bits) & maxv)

    if pad:
        if bits:
            ret.append((acc << (tobits - bits)) & maxv)
    elif bits >= frombits or ((acc << (tobits - bits)) & maxv):
        raise ValueError("Invalid bits")

    return ret


def encode_cashaddr(prefix: str, address_type: str, hash_bytes: bytes) -> str:
    """
    Encode a hash as a CashAddr string.

    Args:
        prefix: Address prefix, e.g. "bitcoincash" or "simpleledger"
        address_type: "p2pkh" or "p2sh"
        hash_bytes: Public key hash or script hash

    Returns:
        Prefixed CashAddr string
    """
    if len(hash_bytes) not in HASH_SIZES:
        raise AddressFormatError(f"Unsupported hash length: {len(hash_bytes)}")

    version = (TYPE_BITS[address_type] << 3) | HASH_SIZES.index(len(hash_bytes))
    data = convertbits(bytes([version]) + hash_bytes, 8, 5)
    combined = data + cashaddr_create_checksum(prefix, data)
    return prefix + ":" + "".join(CHARSET[d] for d in combined)


def decode_cashaddr(address: str) -> tuple[str, str, bytes]:
    """
    Decode a CashAddr string, with or without its prefix.

    Returns:
        (prefix, address_type, hash_bytes)

    Raises:
        AddressFormatError: On mixed case, bad characters, bad checksum or bad payload
    """
    if address.lower() != address and address.upper() != address:
        raise AddressFormatError(f"Mixed case address: {address}")
    address = address.lower()

    if ":" in address:
        prefix, payload = address.split(":", 1)
        candidates = [prefix]
    else:
        payload = address
        candidates = list(PREFIX_NETWORKS)

    if not payload or any(c not in CHARSET for c in payload):
        raise AddressFormatError(f"Invalid characters in address: {address}")

    data = [CHARSET.find(c) for c in payload]
    if len(data) < 9:
        raise AddressFormatError(f"Address too short: {address}")

    prefix = next((p for p in candidates if cashaddr_verify_checksum(p, data)), None)
    if prefix is None:
        raise AddressFormatError(f"Invalid checksum for address: {address}")

    try:
        decoded = convertbits(data[:-8], 5, 8, pad=False)
    except ValueError as e:
        raise AddressFormatError(f"Invalid payload padding: {address}") from e

    if not decoded:
        raise AddressFormatError(f"Empty payload: {address}")

    version = decoded[0]
    hash_bytes = bytes(decoded[1:])
    if version & 0x80:
        raise AddressFormatError(f"Reserved version bit set: {address}")

    type_bits = (version >> 3) & 0x0F
    address_type = next((t for t, bits in TYPE_BITS.items() if bits == type_bits), None)
    if address_type is None:
        raise AddressFormatError(f"Unknown address type {type_bits}: {address}")

    if HASH_SIZES[version & 0x07] != len(hash_bytes):
        raise AddressFormatError(f"Hash length does not match version byte: {address}")

    return prefix, address_type, hash_bytes


def decode_legacy(address: str) -> tuple[str, str, bytes]:
    """
    Decode a legacy Base58Check address.

    Returns:
        (network, address_type, hash_bytes)
    """
    try:
        decoded = base58.b58decode_check(address)
    except ValueError as e:
        raise AddressFormatError(f"Invalid legacy address: {address}") from e

    version = decoded[0]
    if version not in LEGACY_VERSIONS or len(decoded) != 21:
        raise AddressFormatError(f"Unknown legacy address version: {version}")

    network, address_type = LEGACY_VERSIONS[version]
    return network, address_type, decoded[1:]


def _parse(address: str) -> tuple[str, str, bytes]:
    """Return (network, address_type, hash_bytes) for any supported format."""
    if not isinstance(address, str) or not address.strip():
        raise AddressFormatError(f"Address must be a non-empty string, got {address!r}")

    address = address.strip()
    lowered = address.lower()

    if ":" in address or lowered[0] in ("q", "p"):
        prefix, address_type, hash_bytes = decode_cashaddr(address)
        if prefix not in PREFIX_NETWORKS:
            raise AddressFormatError(f"Unknown address prefix: {prefix}")
        return PREFIX_NETWORKS[prefix], address_type, hash_bytes

    return decode_legacy(address)


def to_cash_address(address: str) -> str:
    """
    Normalize any supported address format to its canonical CashAddr.

    simpleledger:, bitcoincash:, unprefixed CashAddr and legacy Base58 addresses
    are accepted. The returned address uses the bitcoincash/bchtest/bchreg prefix
    matching the input's network.

    Raises:
        AddressFormatError: If the address is malformed
    """
    network, address_type, hash_bytes = _parse(address)
    return encode_cashaddr(CASH_PREFIXES[network], address_type, hash_bytes)


def to_slp_address(address: str) -> str:
    """Normalize any supported address format to its simpleledger form."""
    network, address_type, hash_bytes = _parse(address)
    return encode_cashaddr(SLP_PREFIXES[network], address_type, hash_bytes)
