# felt.py
# --------------------------------------------------------------
# Primitive decoders for Starknet felt252 serialisation.
#
#   felt252 / u128 / u64 / ContractAddress : 1 element
#   bool                                   : 1 element (0 / 1)
#   u256                                   : 2 elements (low, high)
#   Span<u256>                             : length + 2 * length elements
# --------------------------------------------------------------
from typing import Sequence, Union
from eth_utils import is_0x_prefixed, remove_0x_prefix
from sudo_indexer.indexer.errors import DecodeError, SpanOverrunError

Felt = Union[str, int, None]

U128 = 1 << 128
FELT_HEX_WIDTH = 64
ZERO_ADDRESS = "0x" + "0" * FELT_HEX_WIDTH


def to_int(felt: Felt) -> int:
    """Missing / empty → 0, ``0x`` strings are hex, other strings decimal."""
    if felt is None or felt == "":
        return 0
    if isinstance(felt, bool):
        return int(felt)
    if isinstance(felt, int):
        value = felt
    else:
        raw = felt.strip()
        try:
            if is_0x_prefixed(raw):
                digits = remove_0x_prefix(raw)
                value = int(digits, 16) if digits else 0
            else:
                value = int(raw, 10)
        except ValueError as e:
            raise DecodeError(f"not a felt: {felt!r}") from e
    if value < 0:
        raise DecodeError(f"negative felt: {felt!r}")
    return value


def to_u256(low: Felt, high: Felt) -> int:
    return (to_int(high) << 128) + to_int(low)


def split_u256(value: int) -> tuple[int, int]:
    """Inverse of ``to_u256`` → (low, high)."""
    return value % U128, value >> 128


def to_bool(felt: Felt) -> bool:
    return to_int(felt) == 1


def to_hex(felt: Felt) -> str:
    """Zero-padded ``0x`` + 64 lowercase hex digits.

    Selectors and addresses share this format so they compare as strings no
    matter how the upstream serialised them (``0x5`` vs ``0x0005``).
    """
    if felt is None or felt == "":
        return ZERO_ADDRESS
    return "0x" + format(to_int(felt), f"0{FELT_HEX_WIDTH}x")


to_address = to_hex


def felt_at(elements: Sequence[Felt], index: int) -> Felt:
    return elements[index] if index < len(elements) else None


def to_u256_span(elements: Sequence[Felt], start: int) -> tuple[list[int], int]:
    """Decode a ``Span<u256>`` starting at ``start``.

    Returns ``(values, consumed)`` with ``consumed == 1 + 2 * len(values)``.
    Callers composing several fields must advance their own offset by
    ``consumed``; the encoding has no terminator.
    """
    count = to_int(felt_at(elements, start))
    first = start + 1
    available = max(len(elements) - first, 0)
    if 2 * count > available:
        raise SpanOverrunError(start, count, available)

    values = [
        to_u256(elements[first + 2 * i], elements[first + 2 * i + 1])
        for i in range(count)
    ]
    return values, 1 + 2 * count
