# decoder.py
# --------------------------------------------------------------
# Decode sudoAMM v2 Cairo events → typed records.
#
# Every decoder is pure: (keys, data) in, named tuple out. keys[0] is
# always the selector, so indexed fields start at keys[1]. Missing
# trailing felts decode as zero; only a span that overruns its array
# raises (SpanOverrunError).
# --------------------------------------------------------------
from typing import Callable, Sequence
from sudo_indexer.indexer import events as ev
from sudo_indexer.indexer.felt import (
    Felt,
    felt_at,
    to_address,
    to_bool,
    to_int,
    to_u256,
    to_u256_span,
)
from sudo_indexer.indexer.selectors import EventKind

Felts = Sequence[Felt]


def _u256(elements: Felts, index: int) -> int:
    return to_u256(felt_at(elements, index), felt_at(elements, index + 1))


# ── factory ─────────────────────────────────────────────────────────────

def decode_new_erc721_pair(keys: Felts, data: Felts) -> ev.NewERC721Pair:
    """Keys: [selector, pool]  Data: [ids...] (Span<u256>)"""
    initial_ids, _ = to_u256_span(data, 0)
    return ev.NewERC721Pair(pool_address=to_address(felt_at(keys, 1)), initial_ids=initial_ids)


def decode_new_erc1155_pair(keys: Felts, data: Felts) -> ev.NewERC1155Pair:
    """Keys: [selector, pool]  Data: [balance_low, balance_high]"""
    return ev.NewERC1155Pair(
        pool_address=to_address(felt_at(keys, 1)),
        initial_balance=_u256(data, 0),
    )


def decode_erc20_deposit(keys: Felts, data: Felts) -> ev.ERC20Deposit:
    return ev.ERC20Deposit(pool_address=to_address(felt_at(keys, 1)), amount=_u256(data, 0))


def decode_nft_deposit(keys: Felts, data: Felts) -> ev.NFTDeposit:
    ids, _ = to_u256_span(data, 0)
    return ev.NFTDeposit(pool_address=to_address(felt_at(keys, 1)), ids=ids)


def decode_erc1155_deposit(keys: Felts, data: Felts) -> ev.ERC1155Deposit:
    """Keys: [selector, pool, id_low, id_high]  Data: [amount_low, amount_high]"""
    return ev.ERC1155Deposit(
        pool_address=to_address(felt_at(keys, 1)),
        id=_u256(keys, 2),
        amount=_u256(data, 0),
    )


def decode_protocol_fee_recipient_update(keys: Felts, data: Felts) -> ev.ProtocolFeeRecipientUpdate:
    return ev.ProtocolFeeRecipientUpdate(recipient_address=to_address(felt_at(keys, 1)))


def decode_protocol_fee_multiplier_update(keys: Felts, data: Felts) -> ev.ProtocolFeeMultiplierUpdate:
    return ev.ProtocolFeeMultiplierUpdate(new_multiplier=_u256(data, 0))


def decode_bonding_curve_status_update(keys: Felts, data: Felts) -> ev.BondingCurveStatusUpdate:
    return ev.BondingCurveStatusUpdate(
        bonding_curve=to_address(felt_at(keys, 1)),
        is_allowed=to_bool(felt_at(data, 0)),
    )


def decode_router_status_update(keys: Felts, data: Felts) -> ev.RouterStatusUpdate:
    return ev.RouterStatusUpdate(
        router=to_address(felt_at(keys, 1)),
        is_allowed=to_bool(felt_at(data, 0)),
    )


def decode_call_target_status_update(keys: Felts, data: Felts) -> ev.CallTargetStatusUpdate:
    return ev.CallTargetStatusUpdate(
        target=to_address(felt_at(keys, 1)),
        is_allowed=to_bool(felt_at(data, 0)),
    )


# ── pair parameters ─────────────────────────────────────────────────────
# spot price / delta / fee are u128 and travel as a single indexed felt

def decode_spot_price_update(keys: Felts, data: Felts) -> ev.SpotPriceUpdate:
    return ev.SpotPriceUpdate(new_spot_price=to_int(felt_at(keys, 1)))


def decode_delta_update(keys: Felts, data: Felts) -> ev.DeltaUpdate:
    return ev.DeltaUpdate(new_delta=to_int(felt_at(keys, 1)))


def decode_fee_update(keys: Felts, data: Felts) -> ev.FeeUpdate:
    return ev.FeeUpdate(new_fee=to_int(felt_at(keys, 1)))


def decode_asset_recipient_change(keys: Felts, data: Felts) -> ev.AssetRecipientChange:
    return ev.AssetRecipientChange(new_recipient=to_address(felt_at(keys, 1)))


def decode_token_deposit(keys: Felts, data: Felts) -> ev.TokenDeposit:
    return ev.TokenDeposit(amount=_u256(data, 0))


def decode_token_withdrawal(keys: Felts, data: Felts) -> ev.TokenWithdrawal:
    return ev.TokenWithdrawal(amount=_u256(data, 0))


def decode_ownership_transferred(keys: Felts, data: Felts) -> ev.OwnershipTransferred:
    """Keys: [selector, previous_owner, new_owner]"""
    return ev.OwnershipTransferred(
        previous_owner=to_address(felt_at(keys, 1)),
        new_owner=to_address(felt_at(keys, 2)),
    )


# ── ERC721 swaps ────────────────────────────────────────────────────────

def decode_swap_nft_out_pair_ids(keys: Felts, data: Felts) -> ev.SwapNFTOutPairIds:
    """BUY.  Data: [amount_in_low, amount_in_high, ids...]"""
    amount_in = _u256(data, 0)
    ids, _ = to_u256_span(data, 2)
    return ev.SwapNFTOutPairIds(amount_in=amount_in, ids=ids)


def decode_swap_nft_in_pair_ids(keys: Felts, data: Felts) -> ev.SwapNFTInPairIds:
    """SELL.  Data: [amount_out_low, amount_out_high, ids...]"""
    amount_out = _u256(data, 0)
    ids, _ = to_u256_span(data, 2)
    return ev.SwapNFTInPairIds(amount_out=amount_out, ids=ids)


def decode_nft_withdrawal_ids(keys: Felts, data: Felts) -> ev.NFTWithdrawalIds:
    ids, _ = to_u256_span(data, 0)
    return ev.NFTWithdrawalIds(ids=ids)


# ── ERC1155 swaps ───────────────────────────────────────────────────────

def decode_swap_nft_out_pair_count(keys: Felts, data: Felts) -> ev.SwapNFTOutPairCount:
    return ev.SwapNFTOutPairCount(amount_in=_u256(data, 0), num_nfts=_u256(data, 2))


def decode_swap_nft_in_pair_count(keys: Felts, data: Felts) -> ev.SwapNFTInPairCount:
    return ev.SwapNFTInPairCount(amount_out=_u256(data, 0), num_nfts=_u256(data, 2))


def decode_nft_withdrawal_count(keys: Felts, data: Felts) -> ev.NFTWithdrawalCount:
    return ev.NFTWithdrawalCount(num_nfts=_u256(data, 0))


DECODERS: dict[EventKind, Callable[[Felts, Felts], ev.DecodedEvent]] = {
    EventKind.NEW_ERC721_PAIR: decode_new_erc721_pair,
    EventKind.NEW_ERC1155_PAIR: decode_new_erc1155_pair,
    EventKind.ERC20_DEPOSIT: decode_erc20_deposit,
    EventKind.NFT_DEPOSIT: decode_nft_deposit,
    EventKind.ERC1155_DEPOSIT: decode_erc1155_deposit,
    EventKind.PROTOCOL_FEE_RECIPIENT_UPDATE: decode_protocol_fee_recipient_update,
    EventKind.PROTOCOL_FEE_MULTIPLIER_UPDATE: decode_protocol_fee_multiplier_update,
    EventKind.BONDING_CURVE_STATUS_UPDATE: decode_bonding_curve_status_update,
    EventKind.ROUTER_STATUS_UPDATE: decode_router_status_update,
    EventKind.CALL_TARGET_STATUS_UPDATE: decode_call_target_status_update,
    EventKind.SPOT_PRICE_UPDATE: decode_spot_price_update,
    EventKind.DELTA_UPDATE: decode_delta_update,
    EventKind.FEE_UPDATE: decode_fee_update,
    EventKind.ASSET_RECIPIENT_CHANGE: decode_asset_recipient_change,
    EventKind.TOKEN_DEPOSIT: decode_token_deposit,
    EventKind.TOKEN_WITHDRAWAL: decode_token_withdrawal,
    EventKind.OWNERSHIP_TRANSFERRED: decode_ownership_transferred,
    EventKind.SWAP_NFT_OUT_PAIR_IDS: decode_swap_nft_out_pair_ids,
    EventKind.SWAP_NFT_IN_PAIR_IDS: decode_swap_nft_in_pair_ids,
    EventKind.NFT_WITHDRAWAL_IDS: decode_nft_withdrawal_ids,
    EventKind.SWAP_NFT_OUT_PAIR_COUNT: decode_swap_nft_out_pair_count,
    EventKind.SWAP_NFT_IN_PAIR_COUNT: decode_swap_nft_in_pair_count,
    EventKind.NFT_WITHDRAWAL_COUNT: decode_nft_withdrawal_count,
}


def decode_event(kind: EventKind, keys: Felts, data: Felts) -> ev.DecodedEvent:
    return DECODERS[kind](keys, data)
