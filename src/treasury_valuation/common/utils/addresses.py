"""
Address Utilities
=================

Registry entries, snapshot keys and contract results must compare equal
regardless of checksum casing, so every address is normalised to lowercase
hex before it is stored or looked up.
"""


def normalize_address(address: str) -> str:
    """
    Lowercase and strip an address (or Balancer pool id).

    Raises:
        ValueError: If the value is not a 0x-prefixed hex string
    """
    if not isinstance(address, str):
        raise ValueError(f"Address must be a string, got {type(address).__name__}")

    value = address.strip().lower()
    if not value.startswith("0x"):
        raise ValueError(f"Address must be 0x-prefixed: {address!r}")

    try:
        int(value[2:] or "0", 16)
    except ValueError as e:
        raise ValueError(f"Address is not valid hex: {address!r}") from e

    return value


def addresses_equal(first: str, second: str) -> bool:
    return normalize_address(first) == normalize_address(second)
