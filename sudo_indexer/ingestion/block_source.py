# block_source.py
# --------------------------------------------------------------
# Read blocks from a JSON-lines dump, one block per line:
#
#   {"block_number": 850123,
#    "timestamp": 1736200000,            # epoch seconds or ISO-8601
#    "events": [{"keys": [...], "data": [...],
#                "from_address": "0x...", # or "address"
#                "transaction_hash": "0x...",
#                "event_index": 0}, ...]}
#
# The live stream client is a separate collaborator; this feeds the
# projector for backfills and replays.
# --------------------------------------------------------------
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator
from sudo_indexer.indexer.events import Block, RawEvent


def parse_timestamp(value) -> datetime:
    if value is None:
        return datetime.fromtimestamp(0, tz=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_event(raw: dict, position: int) -> RawEvent:
    return RawEvent(
        keys=list(raw.get("keys") or []),
        data=list(raw.get("data") or []),
        address=raw.get("from_address", raw.get("address")),
        transaction_hash=raw.get("transaction_hash") or "0x0",
        event_index=int(raw.get("event_index", position)),
    )


def parse_block(raw: dict) -> Block:
    return Block(
        block_number=int(raw["block_number"]),
        timestamp=parse_timestamp(raw.get("timestamp")),
        events=[parse_event(e, i) for i, e in enumerate(raw.get("events") or [])],
    )


def read_blocks(path: Path, starting_block: int = 0) -> Iterator[Block]:
    """Yield blocks in file order, skipping blank lines and blocks below ``starting_block``."""
    with open(path, "r", encoding="utf-8") as fh:
        for line_no, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                block = parse_block(json.loads(line))
            except (ValueError, KeyError, TypeError) as e:
                raise ValueError(f"{path}:{line_no}: malformed block: {e}") from e
            if block.block_number < starting_block:
                continue
            yield block
