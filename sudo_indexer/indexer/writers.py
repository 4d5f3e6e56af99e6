# writers.py
# --------------------------------------------------------------
# Row-level writes used by the projector.
#
# Append-only tables (swaps, pool_updates, protocol_settings,
# processed_events) insert with ON CONFLICT DO NOTHING on their
# (block_number, transaction_hash, event_index) key; pools upsert on
# address; pool_nfts is insert-if-absent on (pool_address, token_id).
# --------------------------------------------------------------
import json
from datetime import datetime
from typing import Iterable
from sqlalchemy import delete, select, update
from sqlalchemy.engine import Row
from sqlalchemy.orm import Session
from sudo_indexer.storage.db_utils import conflict_insert
from sudo_indexer.storage.models.pools import Pool
from sudo_indexer.storage.models.swaps import Swap
from sudo_indexer.storage.models.pool_nfts import PoolNft
from sudo_indexer.storage.models.pool_updates import PoolUpdate
from sudo_indexer.storage.models.protocol_settings import ProtocolSetting
from sudo_indexer.storage.models.processed_events import ProcessedEvent

EVENT_KEY = ["block_number", "transaction_hash", "event_index"]

# nft_count columns are BIGINT; ERC1155 amounts are u256 on the wire
MAX_NFT_COUNT = (1 << 63) - 1

pools = Pool.__table__
swaps = Swap.__table__
pool_nfts = PoolNft.__table__
pool_updates = PoolUpdate.__table__
protocol_settings = ProtocolSetting.__table__
processed_events = ProcessedEvent.__table__


def _stored_count(count: int) -> int:
    return min(count, MAX_NFT_COUNT)


def _insert_ignore(session: Session, table, row: dict, index_elements: list[str]) -> bool:
    """Insert ``row`` unless its key exists. Returns True when a row was written."""
    stmt = (
        conflict_insert(session, table).values(row)
        .on_conflict_do_nothing(index_elements=index_elements)
        .returning(table.c.id)
    )
    return session.execute(stmt).first() is not None


def record_processed_event(
    session: Session,
    block_number: int,
    transaction_hash: str,
    event_index: int,
    selector: str,
    from_address: str,
    processed_at: datetime,
) -> bool:
    return _insert_ignore(session, processed_events, {
        "block_number": block_number,
        "transaction_hash": transaction_hash,
        "event_index": event_index,
        "selector": selector,
        "from_address": from_address,
        "processed_at": processed_at,
    }, EVENT_KEY)


# ── pools ───────────────────────────────────────────────────────────────

def get_pool(session: Session, address: str) -> Row | None:
    return session.execute(select(pools).where(pools.c.address == address)).first()


def upsert_pool(session: Session, row: dict) -> None:
    """Create a pool row; on replay only reconcile the inventory count and stamps."""
    row = {**row, "nft_count": _stored_count(row["nft_count"])}
    stmt = conflict_insert(session, pools).values(row)
    stmt = stmt.on_conflict_do_update(
        index_elements=["address"],
        set_={
            "nft_count": stmt.excluded.nft_count,
            "updated_at": stmt.excluded.updated_at,
            "block_number": stmt.excluded.block_number,
            "transaction_hash": stmt.excluded.transaction_hash,
        },
    )
    session.execute(stmt)


def update_pool(session: Session, address: str, **values) -> int:
    if "nft_count" in values:
        values["nft_count"] = _stored_count(values["nft_count"])
    result = session.execute(
        update(pools).where(pools.c.address == address).values(**values)
    )
    return result.rowcount


# ── pool inventory ──────────────────────────────────────────────────────

def add_pool_nfts(
    session: Session,
    pool_address: str,
    token_ids: Iterable[int],
    block_number: int,
    added_at: datetime,
) -> int:
    """Insert the ids the pool does not hold yet; returns how many were new."""
    wanted = list(dict.fromkeys(str(t) for t in token_ids))
    if not wanted:
        return 0

    held = set(session.execute(
        select(pool_nfts.c.token_id).where(
            pool_nfts.c.pool_address == pool_address,
            pool_nfts.c.token_id.in_(wanted),
        )
    ).scalars())
    new_ids = [t for t in wanted if t not in held]
    if not new_ids:
        return 0

    stmt = (
        conflict_insert(session, pool_nfts).values([
            {
                "pool_address": pool_address,
                "token_id": token_id,
                "added_at": added_at,
                "block_number": block_number,
            }
            for token_id in new_ids
        ])
        .on_conflict_do_nothing(index_elements=["pool_address", "token_id"])
    )
    session.execute(stmt)
    return len(new_ids)


def remove_pool_nfts(session: Session, pool_address: str, token_ids: Iterable[int]) -> int:
    """Delete the given ids from the pool; returns how many rows went away."""
    wanted = list(dict.fromkeys(str(t) for t in token_ids))
    if not wanted:
        return 0
    result = session.execute(
        delete(pool_nfts).where(
            pool_nfts.c.pool_address == pool_address,
            pool_nfts.c.token_id.in_(wanted),
        )
    )
    return result.rowcount


# ── history tables ──────────────────────────────────────────────────────

def insert_swap(
    session: Session,
    pool_address: str,
    direction: str,
    token_amount: int,
    nft_count: int,
    nft_ids: list[int] | None,
    block_number: int,
    transaction_hash: str,
    event_index: int,
    timestamp: datetime,
) -> bool:
    return _insert_ignore(session, swaps, {
        "pool_address": pool_address,
        "direction": direction,
        "token_amount": str(token_amount),
        "nft_count": _stored_count(nft_count),
        "nft_ids": json.dumps([str(i) for i in nft_ids]) if nft_ids is not None else None,
        "block_number": block_number,
        "transaction_hash": transaction_hash,
        "event_index": event_index,
        "timestamp": timestamp,
    }, EVENT_KEY)


def insert_pool_update(
    session: Session,
    pool_address: str,
    update_type: str,
    old_value: str | None,
    new_value: str,
    block_number: int,
    transaction_hash: str,
    event_index: int,
    timestamp: datetime,
) -> bool:
    return _insert_ignore(session, pool_updates, {
        "pool_address": pool_address,
        "update_type": update_type,
        "old_value": old_value,
        "new_value": new_value,
        "block_number": block_number,
        "transaction_hash": transaction_hash,
        "event_index": event_index,
        "timestamp": timestamp,
    }, EVENT_KEY)


def insert_protocol_setting(
    session: Session,
    setting_type: str,
    address: str | None,
    value: str,
    block_number: int,
    transaction_hash: str,
    event_index: int,
    timestamp: datetime,
) -> bool:
    return _insert_ignore(session, protocol_settings, {
        "setting_type": setting_type,
        "address": address,
        "value": value,
        "block_number": block_number,
        "transaction_hash": transaction_hash,
        "event_index": event_index,
        "timestamp": timestamp,
    }, EVENT_KEY)
