import json
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sudo_indexer.indexer import writers
from sudo_indexer.indexer.felt import ZERO_ADDRESS, to_address
from sudo_indexer.indexer.projector import Outcome, StateProjector
from sudo_indexer.indexer.tracker import PairAddressTracker
from sudo_indexer.storage.models.pools import Pool
from sudo_indexer.storage.models.swaps import Swap
from sudo_indexer.storage.models.pool_nfts import PoolNft
from sudo_indexer.storage.models.pool_updates import PoolUpdate
from sudo_indexer.storage.models.protocol_settings import ProtocolSetting
from sudo_indexer.storage.models.processed_events import ProcessedEvent
from event_builders import FACTORY, OTHER_POOL, POOL, make_block, make_event, span, u256


def pool_row(session, address=POOL):
    return session.execute(select(Pool.__table__).where(Pool.address == address)).first()


def held_ids(session, address=POOL):
    return sorted(session.execute(
        select(PoolNft.token_id).where(PoolNft.pool_address == address)
    ).scalars(), key=int)


def count(session, model):
    return session.execute(select(func.count()).select_from(model)).scalar()


def rows(session, model):
    return session.execute(select(model.__table__).order_by(model.id)).all()


def create_erc721(ids, address=POOL, tx="0xc0", index=0):
    return make_event("NewERC721Pair", keys=[address], data=span(ids), address=FACTORY, tx=tx, index=index)


def create_erc1155(balance, address=POOL, tx="0xc1", index=0):
    return make_event("NewERC1155Pair", keys=[address], data=u256(balance), address=FACTORY, tx=tx, index=index)


def buy_ids(amount_in, ids, tx="0xb0", index=0):
    return make_event("SwapNFTOutPairIds", data=[*u256(amount_in), *span(ids)], tx=tx, index=index)


def sell_ids(amount_out, ids, tx="0x5e", index=0):
    return make_event("SwapNFTInPairIds", data=[*u256(amount_out), *span(ids)], tx=tx, index=index)


def outcomes(results):
    return [r.outcome for r in results]


# ── creation ────────────────────────────────────────────────────────────

def test_erc721_pool_created_with_initial_ids(projector, session, tracker):
    results = projector.process_block(make_block(100, create_erc721([1, 2])))

    assert outcomes(results) == [Outcome.APPLIED]
    pool = pool_row(session)
    assert pool.nft_type == "ERC721"
    assert pool.nft_count == 2
    assert pool.is_active is True
    assert pool.token_balance == "0"
    assert pool.owner == ZERO_ADDRESS
    assert pool.block_number == 100
    assert held_ids(session) == ["1", "2"]
    assert POOL in tracker


def test_erc721_pool_created_empty_is_inactive(projector, session):
    projector.process_block(make_block(100, create_erc721([])))
    pool = pool_row(session)
    assert pool.nft_count == 0
    assert pool.is_active is False


def test_erc1155_pool_created_with_balance(projector, session, tracker):
    projector.process_block(make_block(100, create_erc1155(5)))
    pool = pool_row(session)
    assert pool.nft_type == "ERC1155"
    assert pool.nft_count == 5
    assert pool.is_active is True
    assert count(session, PoolNft) == 0
    assert POOL in tracker


def test_pool_creation_only_trusted_from_factory(projector, session, tracker):
    tracker.add(OTHER_POOL)
    event = make_event("NewERC721Pair", keys=[POOL], data=span([1]), address=OTHER_POOL)

    results = projector.process_block(make_block(100, event))

    assert outcomes(results) == [Outcome.IGNORED_WRONG_SOURCE]
    assert pool_row(session) is None
    assert POOL not in tracker


def test_pool_created_earlier_in_block_receives_later_events(projector, session):
    block = make_block(
        100,
        create_erc721([1, 2], tx="0xaa", index=0),
        buy_ids(250, [2], tx="0xbb", index=0),
    )
    results = projector.process_block(block)

    assert outcomes(results) == [Outcome.APPLIED, Outcome.APPLIED]
    assert held_ids(session) == ["1"]
    assert pool_row(session).token_balance == "250"


def test_upsert_on_existing_pool_only_reconciles_inventory(session):
    row = {
        "address": POOL, "nft_address": ZERO_ADDRESS, "token_address": ZERO_ADDRESS,
        "bonding_curve": ZERO_ADDRESS, "pool_type": "TRADE", "nft_type": "ERC721",
        "owner": ZERO_ADDRESS, "nft_count": 2, "is_active": True,
        "block_number": 1, "transaction_hash": "0x1",
    }
    writers.upsert_pool(session, row)
    owner = to_address("0x777")
    writers.update_pool(session, POOL, owner=owner, spot_price="900")

    writers.upsert_pool(session, {**row, "nft_count": 3, "block_number": 2, "transaction_hash": "0x2"})

    pool = pool_row(session)
    assert pool.nft_count == 3
    assert (pool.block_number, pool.transaction_hash) == (2, "0x2")
    assert pool.owner == owner
    assert pool.spot_price == "900"
    assert count(session, Pool) == 1


# ── swaps ───────────────────────────────────────────────────────────────

def test_buy_removes_id_and_credits_tokens(projector, session):
    projector.process_block(make_block(100, create_erc721([1, 2])))

    results = projector.process_block(make_block(101, buy_ids(1000, [1])))

    assert outcomes(results) == [Outcome.APPLIED]
    assert held_ids(session) == ["2"]
    pool = pool_row(session)
    assert pool.nft_count == 1
    assert pool.token_balance == "1000"
    assert pool.is_active is True
    assert pool.block_number == 101
    assert pool.transaction_hash == "0xb0"

    (swap,) = rows(session, Swap)
    assert swap.direction == "BUY"
    assert swap.nft_count == 1
    assert swap.token_amount == "1000"
    assert json.loads(swap.nft_ids) == ["1"]
    assert (swap.block_number, swap.transaction_hash, swap.event_index) == (101, "0xb0", 0)


def test_buying_last_nft_deactivates_pool(projector, session):
    projector.process_block(make_block(100, create_erc721([1])))
    projector.process_block(make_block(101, buy_ids(10, [1])))

    pool = pool_row(session)
    assert pool.nft_count == 0
    assert pool.is_active is False
    assert held_ids(session) == []


def test_buy_of_unknown_id_does_not_underflow(projector, session):
    projector.process_block(make_block(100, create_erc721([1])))
    projector.process_block(make_block(101, buy_ids(10, [42])))

    pool = pool_row(session)
    assert pool.nft_count == 1
    assert held_ids(session) == ["1"]


def test_sell_adds_ids_and_saturates_balance(projector, session):
    projector.process_block(make_block(100, create_erc721([1])))
    projector.process_block(make_block(101, make_event("TokenDeposit", data=u256(300))))

    results = projector.process_block(make_block(102, sell_ids(500, [1, 7, 8])))

    assert outcomes(results) == [Outcome.APPLIED]
    pool = pool_row(session)
    assert held_ids(session) == ["1", "7", "8"]
    assert pool.nft_count == 3     # id 1 was already held
    assert pool.token_balance == "0"
    assert pool.is_active is True
    (swap,) = rows(session, Swap)
    assert swap.direction == "SELL"
    assert swap.nft_count == 3
    assert json.loads(swap.nft_ids) == ["1", "7", "8"]


def test_erc1155_count_swaps(projector, session):
    projector.process_block(make_block(100, create_erc1155(5)))

    projector.process_block(make_block(101, make_event(
        "SwapNFTOutPairCount", data=[*u256(900), *u256(2)], tx="0xb1"
    )))
    pool = pool_row(session)
    assert pool.nft_count == 3
    assert pool.token_balance == "900"
    assert pool.is_active is True

    projector.process_block(make_block(102, make_event(
        "SwapNFTInPairCount", data=[*u256(400), *u256(4)], tx="0x5a"
    )))
    pool = pool_row(session)
    assert pool.nft_count == 7
    assert pool.token_balance == "500"

    buy, sell = rows(session, Swap)
    assert (buy.direction, buy.nft_count, buy.nft_ids) == ("BUY", 2, None)
    assert (sell.direction, sell.nft_count, sell.nft_ids) == ("SELL", 4, None)


def test_erc1155_buy_more_than_held_floors_at_zero(projector, session):
    projector.process_block(make_block(100, create_erc1155(1)))
    projector.process_block(make_block(101, make_event("SwapNFTOutPairCount", data=[*u256(1), *u256(3)])))

    pool = pool_row(session)
    assert pool.nft_count == 0
    assert pool.is_active is False


def test_swap_for_missing_pool_row_records_history_only(projector, session, tracker):
    tracker.add(POOL)
    results = projector.process_block(make_block(100, buy_ids(10, [1])))

    assert outcomes(results) == [Outcome.SKIPPED_MISSING_POOL]
    assert count(session, Swap) == 1
    assert pool_row(session) is None


# ── withdrawals ─────────────────────────────────────────────────────────

def test_nft_withdrawal_ids_keeps_pool_active_while_tokens_remain(projector, session):
    projector.process_block(make_block(100, create_erc721([1, 2])))
    projector.process_block(make_block(101, make_event("TokenDeposit", data=u256(50))))

    projector.process_block(make_block(102, make_event("NFTWithdrawalIds", data=span([1, 2]))))

    pool = pool_row(session)
    assert pool.nft_count == 0
    assert pool.token_balance == "50"
    assert pool.is_active is True
    assert held_ids(session) == []
    assert count(session, Swap) == 0


def test_nft_withdrawal_of_everything_deactivates_empty_pool(projector, session):
    projector.process_block(make_block(100, create_erc721([1])))
    projector.process_block(make_block(101, make_event("NFTWithdrawalIds", data=span([1]))))

    assert pool_row(session).is_active is False


def test_nft_withdrawal_count(projector, session):
    projector.process_block(make_block(100, create_erc1155(4)))
    projector.process_block(make_block(101, make_event("NFTWithdrawalCount", data=u256(1))))
    pool = pool_row(session)
    assert pool.nft_count == 3
    assert pool.is_active is True

    projector.process_block(make_block(102, make_event("NFTWithdrawalCount", data=u256(9), tx="0x2")))
    pool = pool_row(session)
    assert pool.nft_count == 0
    assert pool.is_active is False


def test_token_deposit_and_withdrawal(projector, session):
    projector.process_block(make_block(100, create_erc1155(0)))
    assert pool_row(session).is_active is False

    projector.process_block(make_block(101, make_event("TokenDeposit", data=u256(2**130))))
    pool = pool_row(session)
    assert pool.token_balance == str(2**130)
    assert pool.is_active is True

    projector.process_block(make_block(102, make_event("TokenWithdrawal", data=u256(2**129))))
    assert pool_row(session).token_balance == str(2**129)


def test_token_withdrawal_beyond_balance_floors_at_zero(projector, session):
    projector.process_block(make_block(100, create_erc1155(1)))
    projector.process_block(make_block(101, make_event("TokenDeposit", data=u256(50))))

    results = projector.process_block(make_block(102, make_event("TokenWithdrawal", data=u256(80))))

    assert outcomes(results) == [Outcome.APPLIED]
    assert pool_row(session).token_balance == "0"


def test_withdrawing_last_tokens_from_empty_pool_deactivates_it(projector, session):
    projector.process_block(make_block(100, create_erc721([])))
    projector.process_block(make_block(101, make_event("TokenDeposit", data=u256(50))))
    assert pool_row(session).is_active is True

    projector.process_block(make_block(102, make_event("TokenWithdrawal", data=u256(20))))
    assert pool_row(session).is_active is True

    projector.process_block(make_block(103, make_event("TokenWithdrawal", data=u256(30))))
    pool = pool_row(session)
    assert pool.nft_count == 0
    assert pool.token_balance == "0"
    assert pool.is_active is False


def test_huge_erc1155_balance_still_creates_and_tracks_pool(projector, session, tracker):
    results = projector.process_block(make_block(100, create_erc1155(2**64)))

    assert outcomes(results) == [Outcome.APPLIED]
    assert POOL in tracker
    assert pool_row(session).nft_count == writers.MAX_NFT_COUNT

    results = projector.process_block(make_block(101, make_event("TokenDeposit", data=u256(7))))
    assert outcomes(results) == [Outcome.APPLIED]
    assert pool_row(session).token_balance == "7"

    results = projector.process_block(make_block(102, make_event(
        "SwapNFTInPairCount", data=[*u256(1), *u256(2**100)], tx="0x5a"
    )))
    assert outcomes(results) == [Outcome.APPLIED]
    (swap,) = rows(session, Swap)
    assert swap.nft_count == writers.MAX_NFT_COUNT
    assert pool_row(session).nft_count == writers.MAX_NFT_COUNT


def test_token_withdrawal_for_missing_pool_is_skipped(projector, session, tracker):
    tracker.add(POOL)
    results = projector.process_block(make_block(100, make_event("TokenWithdrawal", data=u256(1))))
    assert outcomes(results) == [Outcome.SKIPPED_MISSING_POOL]
    assert pool_row(session) is None


# ── factory deposits ────────────────────────────────────────────────────

def test_factory_deposits(projector, session):
    projector.process_block(make_block(100, create_erc721([])))

    projector.process_block(make_block(
        101,
        make_event("ERC20Deposit", keys=[POOL], data=u256(1234), address=FACTORY, tx="0xd1"),
        make_event("NFTDeposit", keys=[POOL], data=span([5, 6, 5]), address=FACTORY, tx="0xd2"),
    ))

    pool = pool_row(session)
    assert pool.token_balance == "1234"
    assert pool.nft_count == 2
    assert pool.is_active is True
    assert held_ids(session) == ["5", "6"]


def test_erc1155_deposit_sets_token_id(projector, session):
    projector.process_block(make_block(100, create_erc1155(0)))
    big_id = 2**128 + 9

    projector.process_block(make_block(101, make_event(
        "ERC1155Deposit", keys=[POOL, *u256(big_id)], data=u256(6), address=FACTORY
    )))

    pool = pool_row(session)
    assert pool.nft_count == 6
    assert pool.erc1155_id == str(big_id)
    assert pool.is_active is True


def test_deposit_for_unknown_pool_row_is_skipped(projector, session):
    results = projector.process_block(make_block(
        100, make_event("NFTDeposit", keys=[POOL], data=span([1]), address=FACTORY)
    ))
    assert outcomes(results) == [Outcome.SKIPPED_MISSING_POOL]
    assert count(session, PoolNft) == 0


# ── parameter updates ───────────────────────────────────────────────────

def test_parameter_updates_write_pool_and_audit(projector, session):
    projector.process_block(make_block(100, create_erc721([1])))
    new_owner = to_address("0x0e1")
    recipient = to_address("0xfee")

    projector.process_block(make_block(
        101,
        make_event("SpotPriceUpdate", keys=[hex(10**18)], tx="0x1", index=0),
        make_event("DeltaUpdate", keys=["0x5"], tx="0x1", index=1),
        make_event("FeeUpdate", keys=["0x3"], tx="0x1", index=2),
        make_event("AssetRecipientChange", keys=[recipient], tx="0x1", index=3),
        make_event("OwnershipTransferred", keys=[ZERO_ADDRESS, new_owner], tx="0x1", index=4),
        make_event("SpotPriceUpdate", keys=[hex(2 * 10**18)], tx="0x2", index=0),
    ))

    pool = pool_row(session)
    assert pool.spot_price == str(2 * 10**18)
    assert pool.delta == "5"
    assert pool.fee == "3"
    assert pool.asset_recipient == recipient
    assert pool.owner == new_owner

    audit = [(u.update_type, u.old_value, u.new_value) for u in rows(session, PoolUpdate)]
    assert audit == [
        ("SPOT_PRICE", "0", str(10**18)),
        ("DELTA", "0", "5"),
        ("FEE", "0", "3"),
        ("ASSET_RECIPIENT", None, recipient),
        ("OWNER", ZERO_ADDRESS, new_owner),
        ("SPOT_PRICE", str(10**18), str(2 * 10**18)),
    ]


def test_update_without_pool_row_is_audited_with_null_old_value(projector, session, tracker):
    tracker.add(OTHER_POOL)   # known address whose row never got written

    results = projector.process_block(make_block(
        100, make_event("SpotPriceUpdate", keys=["0x1f4"], address=OTHER_POOL)
    ))

    assert outcomes(results) == [Outcome.APPLIED]
    assert pool_row(session, OTHER_POOL) is None
    (update,) = rows(session, PoolUpdate)
    assert update.pool_address == OTHER_POOL
    assert update.update_type == "SPOT_PRICE"
    assert update.old_value is None
    assert update.new_value == "500"


# ── protocol settings ───────────────────────────────────────────────────

def test_protocol_settings_are_appended(projector, session):
    recipient = to_address("0xfee")
    curve = to_address("0xc0ffee")
    router = to_address("0x5011")

    projector.process_block(make_block(
        100,
        make_event("ProtocolFeeRecipientUpdate", keys=[recipient], address=FACTORY, index=0),
        make_event("ProtocolFeeMultiplierUpdate", data=u256(5 * 10**15), address=FACTORY, index=1),
        make_event("BondingCurveStatusUpdate", keys=[curve], data=["0x1"], address=FACTORY, index=2),
        make_event("RouterStatusUpdate", keys=[router], data=["0x0"], address=FACTORY, index=3),
        make_event("CallTargetStatusUpdate", keys=[router], data=["0x1"], address=FACTORY, index=4),
    ))

    settings = [(s.setting_type, s.address, s.value) for s in rows(session, ProtocolSetting)]
    assert settings == [
        ("FEE_RECIPIENT", recipient, recipient),
        ("FEE_MULTIPLIER", None, str(5 * 10**15)),
        ("CURVE_STATUS", curve, "true"),
        ("ROUTER_STATUS", router, "false"),
        ("CALL_TARGET_STATUS", router, "true"),
    ]
    assert count(session, Pool) == 0


# ── classification ──────────────────────────────────────────────────────

def test_irrelevant_events_are_ignored(projector, session, tracker):
    tracker.add(POOL)
    block = make_block(
        100,
        make_event("SpotPriceUpdate", keys=["0x1"], address=OTHER_POOL, index=0),
        make_event("SpotPriceUpdate", keys=["0x1"], address=FACTORY, index=1),
        make_event("ProtocolFeeRecipientUpdate", keys=["0x1"], address=POOL, index=2),
        make_event("SpotPriceUpdate", address=POOL, index=3)._replace(keys=["0x1234"]),
        make_event("SpotPriceUpdate", address=POOL, index=4)._replace(keys=[]),
    )

    results = projector.process_block(block)

    assert outcomes(results) == [
        Outcome.IGNORED_UNKNOWN_SOURCE,
        Outcome.IGNORED_WRONG_SOURCE,
        Outcome.IGNORED_WRONG_SOURCE,
        Outcome.IGNORED_UNKNOWN_SELECTOR,
        Outcome.IGNORED_NO_SELECTOR,
    ]
    assert count(session, PoolUpdate) == 0
    assert count(session, ProtocolSetting) == 0
    assert count(session, ProcessedEvent) == 0


def test_unpadded_source_address_is_recognised(projector, session):
    projector.process_block(make_block(100, create_erc721([1])))
    event = buy_ids(10, [1])._replace(address="0xABC")

    results = projector.process_block(make_block(101, event))

    assert outcomes(results) == [Outcome.APPLIED]


# ── idempotency ─────────────────────────────────────────────────────────

def test_redelivered_swap_is_not_double_counted(projector, session):
    projector.process_block(make_block(100, create_erc721([1, 2])))
    swap_block = make_block(101, buy_ids(1000, [1]))
    projector.process_block(swap_block)

    results = projector.process_block(swap_block)

    assert outcomes(results) == [Outcome.REPLAYED]
    assert count(session, Swap) == 1
    pool = pool_row(session)
    assert pool.token_balance == "1000"
    assert pool.nft_count == 1


def test_replaying_whole_history_leaves_state_unchanged(projector, session):
    blocks = [
        make_block(100, create_erc721([1, 2, 3])),
        make_block(101, make_event("TokenDeposit", data=u256(10), tx="0x1"),
                   make_event("SpotPriceUpdate", keys=["0x64"], tx="0x1", index=1)),
        make_block(102, sell_ids(5, [4], tx="0x2"), buy_ids(7, [1], tx="0x3")),
        make_block(103, make_event("ProtocolFeeMultiplierUpdate", data=u256(3), address=FACTORY, tx="0x4")),
    ]
    for block in blocks:
        projector.process_block(block)
    before = (pool_row(session), held_ids(session), count(session, Swap),
              count(session, PoolUpdate), count(session, ProtocolSetting))

    replayed = [r for block in blocks for r in projector.process_block(block)]

    assert {r.outcome for r in replayed} == {Outcome.REPLAYED}
    after = (pool_row(session), held_ids(session), count(session, Swap),
             count(session, PoolUpdate), count(session, ProtocolSetting))
    assert after == before


def test_restart_relearns_pools_from_table_and_from_replayed_creation(session):
    first = StateProjector(session, PairAddressTracker(FACTORY))
    first.process_block(make_block(100, create_erc721([1])))

    loaded = PairAddressTracker(FACTORY)
    loaded.load(session)
    assert POOL in loaded

    # a tracker that was never loaded still learns the pool when the creation is redelivered
    fresh = PairAddressTracker(FACTORY)
    restarted = StateProjector(session, fresh)
    results = restarted.process_block(make_block(100, create_erc721([1])))
    assert outcomes(results) == [Outcome.REPLAYED]
    assert POOL in fresh


# ── error isolation ─────────────────────────────────────────────────────

def test_decode_error_does_not_stop_the_block(projector, session):
    projector.process_block(make_block(100, create_erc721([1, 2])))
    bad = make_event("SwapNFTOutPairIds", data=[*u256(1), "0x9", *u256(1)], tx="0xbad")
    good = buy_ids(10, [2], tx="0x600d")

    results = projector.process_block(make_block(101, bad, good))

    assert outcomes(results) == [Outcome.DECODE_ERROR, Outcome.APPLIED]
    assert "span" in results[0].error
    assert held_ids(session) == ["1"]
    assert count(session, Swap) == 1


def test_malformed_felt_is_a_decode_error(projector, session):
    projector.process_block(make_block(100, create_erc721([1])))
    results = projector.process_block(make_block(101, make_event("SpotPriceUpdate", keys=["0xnothex"])))
    assert outcomes(results) == [Outcome.DECODE_ERROR]


def test_persistence_error_rolls_back_only_that_event(projector, session, monkeypatch):
    projector.process_block(make_block(100, create_erc721([1, 2])))

    def broken_insert_swap(*args, **kwargs):
        raise OperationalError("INSERT INTO swaps", {}, Exception("connection reset"))

    monkeypatch.setattr(writers, "insert_swap", broken_insert_swap)
    block = make_block(101, buy_ids(10, [1], tx="0x1"), make_event("TokenDeposit", data=u256(5), tx="0x2"))

    results = projector.process_block(block)

    assert outcomes(results) == [Outcome.PERSISTENCE_ERROR, Outcome.APPLIED]
    assert held_ids(session) == ["1", "2"]
    assert pool_row(session).token_balance == "5"
    assert count(session, ProcessedEvent) == 2   # creation + deposit, not the failed buy

    # once the store recovers, the redelivered block applies the missing event
    monkeypatch.undo()
    results = projector.process_block(block)
    assert outcomes(results) == [Outcome.APPLIED, Outcome.REPLAYED]
    assert held_ids(session) == ["2"]
    assert pool_row(session).token_balance == "15"


def test_unexpected_transition_error_is_isolated(projector, session, monkeypatch):
    projector.process_block(make_block(100, create_erc721([1])))

    def boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(writers, "remove_pool_nfts", boom)
    results = projector.process_block(make_block(101, buy_ids(10, [1])))

    assert outcomes(results) == [Outcome.TRANSITION_ERROR]
    assert results[0].error == "boom"
    assert count(session, Swap) == 0
    assert held_ids(session) == ["1"]


# ── invariants ──────────────────────────────────────────────────────────

@pytest.mark.parametrize("sequence", [
    [("TokenWithdrawal", u256(5)), ("SwapNFTInPairIds", [*u256(99), *span([9])])],
    [("SwapNFTOutPairIds", [*u256(1), *span([1, 2, 3])]), ("NFTWithdrawalIds", span([1, 2, 3]))],
    [("TokenDeposit", u256(3)), ("SwapNFTInPairIds", [*u256(4), *span([])]), ("TokenWithdrawal", u256(1))],
])
def test_balances_never_go_negative(projector, session, sequence):
    projector.process_block(make_block(100, create_erc721([1])))
    for i, (name, data) in enumerate(sequence):
        projector.process_block(make_block(101 + i, make_event(name, data=data, tx=hex(i + 1))))

        pool = pool_row(session)
        assert int(pool.token_balance) >= 0
        assert pool.nft_count >= 0
        assert pool.nft_count == len(held_ids(session))
