# projector.py
# --------------------------------------------------------------
# Apply decoded sudoAMM events to the relational projection.
#
# One block at a time, events in delivered order. Every event runs in
# its own SAVEPOINT so one bad event never aborts the block, and every
# transition is gated by a processed_events ledger row so a redelivered
# block is a no-op.
# --------------------------------------------------------------
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import NamedTuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sudo_indexer.indexer import events as ev
from sudo_indexer.indexer import writers
from sudo_indexer.indexer.decoder import decode_event
from sudo_indexer.indexer.errors import DecodeError
from sudo_indexer.indexer.felt import ZERO_ADDRESS, to_hex
from sudo_indexer.indexer.selectors import EventFamily, EventKind, kind_for_selector
from sudo_indexer.indexer.tracker import EventSource, PairAddressTracker

log = logging.getLogger(__name__)


class Outcome(str, Enum):
    APPLIED = "APPLIED"
    REPLAYED = "REPLAYED"
    SKIPPED_MISSING_POOL = "SKIPPED_MISSING_POOL"
    IGNORED_NO_SELECTOR = "IGNORED_NO_SELECTOR"
    IGNORED_UNKNOWN_SOURCE = "IGNORED_UNKNOWN_SOURCE"
    IGNORED_UNKNOWN_SELECTOR = "IGNORED_UNKNOWN_SELECTOR"
    IGNORED_WRONG_SOURCE = "IGNORED_WRONG_SOURCE"
    DECODE_ERROR = "DECODE_ERROR"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    TRANSITION_ERROR = "TRANSITION_ERROR"


class EventResult(NamedTuple):
    block_number: int
    transaction_hash: str
    event_index: int
    outcome: Outcome
    kind: EventKind | None = None
    error: str | None = None


class EventContext(NamedTuple):
    block_number: int
    timestamp: datetime
    transaction_hash: str
    event_index: int
    address: str           # normalised emitting contract


_EXPECTED_SOURCE = {
    EventFamily.FACTORY: EventSource.FACTORY,
    EventFamily.PAIR: EventSource.PAIR,
}


class StateProjector:
    def __init__(self, session: Session, tracker: PairAddressTracker):
        self.session = session
        self.tracker = tracker

    # ------------------------------------------------------------------
    # block / event entry points
    # ------------------------------------------------------------------
    def process_block(self, block: ev.Block) -> list[EventResult]:
        results = [
            self.process_event(block.block_number, block.timestamp, raw)
            for raw in block.events
        ]
        applied = sum(1 for r in results if r.outcome is Outcome.APPLIED)
        if applied:
            log.info(f"Block {block.block_number}: applied {applied}/{len(results)} events")
        return results

    def process_event(self, block_number: int, timestamp: datetime, raw: ev.RawEvent) -> EventResult:
        def result(outcome: Outcome, kind: EventKind | None = None, error: str | None = None):
            return EventResult(block_number, raw.transaction_hash, raw.event_index, outcome, kind, error)

        if not raw.keys:
            return result(Outcome.IGNORED_NO_SELECTOR)

        try:
            address = to_hex(raw.address)
            selector = to_hex(raw.keys[0])
        except DecodeError as e:
            self._log_failure("decode", block_number, raw, e)
            return result(Outcome.DECODE_ERROR, error=str(e))

        source = self.tracker.classify(address)
        if source is EventSource.UNKNOWN:
            return result(Outcome.IGNORED_UNKNOWN_SOURCE)

        kind = kind_for_selector(selector)
        if kind is None:
            return result(Outcome.IGNORED_UNKNOWN_SELECTOR)
        if _EXPECTED_SOURCE[kind.family] is not source:
            return result(Outcome.IGNORED_WRONG_SOURCE, kind)

        try:
            decoded = decode_event(kind, raw.keys, raw.data)
        except DecodeError as e:
            self._log_failure("decode", block_number, raw, e, selector, address)
            return result(Outcome.DECODE_ERROR, kind, str(e))

        ctx = EventContext(block_number, timestamp, raw.transaction_hash, raw.event_index, address)
        try:
            with self.session.begin_nested():
                fresh = writers.record_processed_event(
                    self.session, block_number, raw.transaction_hash, raw.event_index,
                    selector, address, datetime.now(timezone.utc),
                )
                outcome = self._apply(ctx, decoded) if fresh else Outcome.REPLAYED
        except SQLAlchemyError as e:
            self._log_failure("persistence", block_number, raw, e, selector, address)
            return result(Outcome.PERSISTENCE_ERROR, kind, str(e))
        except Exception as e:
            self._log_failure("transition", block_number, raw, e, selector, address)
            return result(Outcome.TRANSITION_ERROR, kind, str(e))

        # a created pool must be known before the next event is classified
        if isinstance(decoded, (ev.NewERC721Pair, ev.NewERC1155Pair)):
            self.tracker.add(decoded.pool_address)
        return result(outcome, kind)

    def _log_failure(self, stage, block_number, raw, error, selector=None, address=None):
        log.error(
            f"Error ({stage}) processing event at block {block_number}, "
            f"tx {raw.transaction_hash}, index {raw.event_index}: {error}",
            exc_info=error,
        )
        log.error(f"Event selector: {selector if selector is not None else raw.keys[0]}")
        log.error(f"From address: {address if address is not None else raw.address}")
        log.error(f"Keys: {json.dumps([str(k) for k in raw.keys])}")
        log.error(f"Data: {json.dumps([str(d) for d in raw.data])}")

    # ------------------------------------------------------------------
    # dispatch
    # ------------------------------------------------------------------
    def _apply(self, ctx: EventContext, decoded: ev.DecodedEvent) -> Outcome:
        match decoded:
            # factory
            case ev.NewERC721Pair():
                return self._new_erc721_pair(ctx, decoded)
            case ev.NewERC1155Pair():
                return self._new_erc1155_pair(ctx, decoded)
            case ev.ERC20Deposit():
                return self._erc20_deposit(ctx, decoded)
            case ev.NFTDeposit():
                return self._nft_deposit(ctx, decoded)
            case ev.ERC1155Deposit():
                return self._erc1155_deposit(ctx, decoded)
            case ev.ProtocolFeeRecipientUpdate(recipient):
                return self._protocol_setting(ctx, "FEE_RECIPIENT", recipient, recipient)
            case ev.ProtocolFeeMultiplierUpdate(multiplier):
                return self._protocol_setting(ctx, "FEE_MULTIPLIER", None, str(multiplier))
            case ev.BondingCurveStatusUpdate(curve, allowed):
                return self._protocol_setting(ctx, "CURVE_STATUS", curve, _flag(allowed))
            case ev.RouterStatusUpdate(router, allowed):
                return self._protocol_setting(ctx, "ROUTER_STATUS", router, _flag(allowed))
            case ev.CallTargetStatusUpdate(target, allowed):
                return self._protocol_setting(ctx, "CALL_TARGET_STATUS", target, _flag(allowed))
            # pair parameters
            case ev.SpotPriceUpdate(value):
                return self._parameter_update(ctx, "SPOT_PRICE", "spot_price", str(value))
            case ev.DeltaUpdate(value):
                return self._parameter_update(ctx, "DELTA", "delta", str(value))
            case ev.FeeUpdate(value):
                return self._parameter_update(ctx, "FEE", "fee", str(value))
            case ev.AssetRecipientChange(recipient):
                return self._parameter_update(ctx, "ASSET_RECIPIENT", "asset_recipient", recipient)
            case ev.OwnershipTransferred(previous_owner, new_owner):
                return self._parameter_update(ctx, "OWNER", "owner", new_owner, old_value=previous_owner)
            case ev.TokenDeposit(amount):
                return self._token_balance(ctx, amount)
            case ev.TokenWithdrawal(amount):
                return self._token_balance(ctx, -amount)
            # swaps
            case ev.SwapNFTOutPairIds(amount_in, ids):
                return self._buy(ctx, amount_in, len(ids), ids)
            case ev.SwapNFTOutPairCount(amount_in, num_nfts):
                return self._buy(ctx, amount_in, num_nfts, None)
            case ev.SwapNFTInPairIds(amount_out, ids):
                return self._sell(ctx, amount_out, len(ids), ids)
            case ev.SwapNFTInPairCount(amount_out, num_nfts):
                return self._sell(ctx, amount_out, num_nfts, None)
            case ev.NFTWithdrawalIds(ids):
                return self._nft_withdrawal(ctx, len(ids), ids)
            case ev.NFTWithdrawalCount(num_nfts):
                return self._nft_withdrawal(ctx, num_nfts, None)
            case _:
                raise TypeError(f"Unhandled event record: {decoded!r}")

    # ------------------------------------------------------------------
    # factory transitions
    # ------------------------------------------------------------------
    def _create_pool(self, ctx: EventContext, address: str, nft_type: str, nft_count: int) -> None:
        # creation events carry no pool parameters; placeholders until enriched
        writers.upsert_pool(self.session, {
            "address": address,
            "nft_address": ZERO_ADDRESS,
            "token_address": ZERO_ADDRESS,
            "bonding_curve": ZERO_ADDRESS,
            "pool_type": "TRADE",
            "nft_type": nft_type,
            "spot_price": "0",
            "delta": "0",
            "fee": "0",
            "owner": ZERO_ADDRESS,
            "token_balance": "0",
            "nft_count": nft_count,
            "is_active": nft_count > 0,
            "created_at": ctx.timestamp,
            "updated_at": ctx.timestamp,
            "block_number": ctx.block_number,
            "transaction_hash": ctx.transaction_hash,
        })

    def _new_erc721_pair(self, ctx: EventContext, event: ev.NewERC721Pair) -> Outcome:
        log.info(f"NewERC721Pair: {event.pool_address}, {len(event.initial_ids)} initial NFTs")
        initial_ids = list(dict.fromkeys(event.initial_ids))
        self._create_pool(ctx, event.pool_address, "ERC721", len(initial_ids))
        writers.add_pool_nfts(
            self.session, event.pool_address, initial_ids, ctx.block_number, ctx.timestamp
        )
        return Outcome.APPLIED

    def _new_erc1155_pair(self, ctx: EventContext, event: ev.NewERC1155Pair) -> Outcome:
        log.info(f"NewERC1155Pair: {event.pool_address}, balance={event.initial_balance}")
        self._create_pool(ctx, event.pool_address, "ERC1155", event.initial_balance)
        return Outcome.APPLIED

    def _erc20_deposit(self, ctx: EventContext, event: ev.ERC20Deposit) -> Outcome:
        log.info(f"ERC20Deposit: pool={event.pool_address}, amount={event.amount}")
        pool = writers.get_pool(self.session, event.pool_address)
        if pool is None:
            return self._missing_pool(ctx, event.pool_address)

        self._touch(ctx, event.pool_address,
                    token_balance=str(int(pool.token_balance) + event.amount),
                    is_active=pool.is_active or event.amount > 0)
        return Outcome.APPLIED

    def _nft_deposit(self, ctx: EventContext, event: ev.NFTDeposit) -> Outcome:
        log.info(f"NFTDeposit: pool={event.pool_address}, {len(event.ids)} NFTs")
        pool = writers.get_pool(self.session, event.pool_address)
        if pool is None:
            return self._missing_pool(ctx, event.pool_address)

        added = writers.add_pool_nfts(
            self.session, event.pool_address, event.ids, ctx.block_number, ctx.timestamp
        )
        self._touch(ctx, event.pool_address,
                    nft_count=pool.nft_count + added,
                    is_active=pool.is_active or added > 0)
        return Outcome.APPLIED

    def _erc1155_deposit(self, ctx: EventContext, event: ev.ERC1155Deposit) -> Outcome:
        log.info(f"ERC1155Deposit: pool={event.pool_address}, id={event.id}, amount={event.amount}")
        pool = writers.get_pool(self.session, event.pool_address)
        if pool is None:
            return self._missing_pool(ctx, event.pool_address)

        self._touch(ctx, event.pool_address,
                    nft_count=pool.nft_count + event.amount,
                    erc1155_id=str(event.id),
                    is_active=pool.is_active or event.amount > 0)
        return Outcome.APPLIED

    def _protocol_setting(self, ctx: EventContext, setting_type: str, address: str | None, value: str) -> Outcome:
        log.info(f"Protocol setting {setting_type}: address={address}, value={value}")
        writers.insert_protocol_setting(
            self.session, setting_type, address, value,
            ctx.block_number, ctx.transaction_hash, ctx.event_index, ctx.timestamp,
        )
        return Outcome.APPLIED

    # ------------------------------------------------------------------
    # pair transitions
    # ------------------------------------------------------------------
    def _parameter_update(
        self,
        ctx: EventContext,
        update_type: str,
        column: str,
        new_value: str,
        old_value: str | None = None,
    ) -> Outcome:
        pool = writers.get_pool(self.session, ctx.address)
        if old_value is None and pool is not None:
            old_value = getattr(pool, column)
        log.info(f"{update_type} update: pool={ctx.address}, {old_value} -> {new_value}")

        if pool is not None:
            self._touch(ctx, ctx.address, **{column: new_value})
        else:
            log.warning(f"{update_type} update for unknown pool row {ctx.address}; audit only")

        writers.insert_pool_update(
            self.session, ctx.address, update_type, old_value, new_value,
            ctx.block_number, ctx.transaction_hash, ctx.event_index, ctx.timestamp,
        )
        return Outcome.APPLIED

    def _token_balance(self, ctx: EventContext, change: int) -> Outcome:
        label = "TokenDeposit" if change >= 0 else "TokenWithdrawal"
        log.info(f"{label}: pool={ctx.address}, amount={abs(change)}")
        pool = writers.get_pool(self.session, ctx.address)
        if pool is None:
            return self._missing_pool(ctx, ctx.address)

        balance = _saturating_add(int(pool.token_balance), change)
        values = {"token_balance": str(balance)}
        if change > 0:
            values["is_active"] = True
        elif change < 0:
            values["is_active"] = pool.nft_count > 0 or balance > 0
        self._touch(ctx, ctx.address, **values)
        return Outcome.APPLIED

    def _buy(self, ctx: EventContext, amount_in: int, num_nfts: int, ids: list[int] | None) -> Outcome:
        log.info(f"Swap BUY: pool={ctx.address}, amount_in={amount_in}, {num_nfts} NFTs")
        self._record_swap(ctx, "BUY", amount_in, num_nfts, ids)

        pool = writers.get_pool(self.session, ctx.address)
        if pool is None:
            return self._missing_pool(ctx, ctx.address)

        removed = self._release_nfts(ctx, num_nfts, ids)
        nft_count = max(0, pool.nft_count - removed)
        self._touch(ctx, ctx.address,
                    nft_count=nft_count,
                    token_balance=str(int(pool.token_balance) + amount_in),
                    is_active=nft_count > 0)
        return Outcome.APPLIED

    def _sell(self, ctx: EventContext, amount_out: int, num_nfts: int, ids: list[int] | None) -> Outcome:
        log.info(f"Swap SELL: pool={ctx.address}, amount_out={amount_out}, {num_nfts} NFTs")
        self._record_swap(ctx, "SELL", amount_out, num_nfts, ids)

        pool = writers.get_pool(self.session, ctx.address)
        if pool is None:
            return self._missing_pool(ctx, ctx.address)

        if ids is None:
            added = num_nfts
        else:
            added = writers.add_pool_nfts(self.session, ctx.address, ids, ctx.block_number, ctx.timestamp)
        self._touch(ctx, ctx.address,
                    nft_count=pool.nft_count + added,
                    token_balance=str(_saturating_add(int(pool.token_balance), -amount_out)),
                    is_active=True)
        return Outcome.APPLIED

    def _nft_withdrawal(self, ctx: EventContext, num_nfts: int, ids: list[int] | None) -> Outcome:
        log.info(f"NFT withdrawal: pool={ctx.address}, {num_nfts} NFTs")
        pool = writers.get_pool(self.session, ctx.address)
        if pool is None:
            return self._missing_pool(ctx, ctx.address)

        removed = self._release_nfts(ctx, num_nfts, ids)
        nft_count = max(0, pool.nft_count - removed)
        self._touch(ctx, ctx.address,
                    nft_count=nft_count,
                    is_active=nft_count > 0 or int(pool.token_balance) > 0)
        return Outcome.APPLIED

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _record_swap(self, ctx: EventContext, direction: str, amount: int, num_nfts: int, ids) -> None:
        writers.insert_swap(
            self.session, ctx.address, direction, amount, num_nfts, ids,
            ctx.block_number, ctx.transaction_hash, ctx.event_index, ctx.timestamp,
        )

    def _release_nfts(self, ctx: EventContext, num_nfts: int, ids: list[int] | None) -> int:
        # ERC1155 pools keep no per-id rows
        if ids is None:
            return num_nfts
        return writers.remove_pool_nfts(self.session, ctx.address, ids)

    def _touch(self, ctx: EventContext, address: str, **values) -> None:
        writers.update_pool(
            self.session,
            address,
            updated_at=ctx.timestamp,
            block_number=ctx.block_number,
            transaction_hash=ctx.transaction_hash,
            **values,
        )

    @staticmethod
    def _missing_pool(ctx: EventContext, address: str) -> Outcome:
        log.warning(
            f"No pool row for {address} (block {ctx.block_number}, "
            f"tx {ctx.transaction_hash}, index {ctx.event_index}); skipped"
        )
        return Outcome.SKIPPED_MISSING_POOL


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _saturating_add(balance: int, change: int) -> int:
    """Balances never go below zero, whatever the delivery order."""
    return max(0, balance + change)
