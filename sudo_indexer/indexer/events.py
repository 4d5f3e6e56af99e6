from typing import NamedTuple, Sequence, Union
from datetime import datetime
from sudo_indexer.indexer.felt import Felt


class RawEvent(NamedTuple):
    keys: Sequence[Felt]          # keys[0] is the selector
    data: Sequence[Felt]
    address: Felt                 # emitting contract
    transaction_hash: str
    event_index: int              # position inside the transaction


class Block(NamedTuple):
    block_number: int
    timestamp: datetime
    events: Sequence[RawEvent]


# ── factory events ──────────────────────────────────────────────────────

class NewERC721Pair(NamedTuple):
    pool_address: str
    initial_ids: list[int]


class NewERC1155Pair(NamedTuple):
    pool_address: str
    initial_balance: int


class ERC20Deposit(NamedTuple):
    pool_address: str
    amount: int


class NFTDeposit(NamedTuple):
    pool_address: str
    ids: list[int]


class ERC1155Deposit(NamedTuple):
    pool_address: str
    id: int
    amount: int


class ProtocolFeeRecipientUpdate(NamedTuple):
    recipient_address: str


class ProtocolFeeMultiplierUpdate(NamedTuple):
    new_multiplier: int


class BondingCurveStatusUpdate(NamedTuple):
    bonding_curve: str
    is_allowed: bool


class RouterStatusUpdate(NamedTuple):
    router: str
    is_allowed: bool


class CallTargetStatusUpdate(NamedTuple):
    target: str
    is_allowed: bool


# ── pair parameter events ───────────────────────────────────────────────

class SpotPriceUpdate(NamedTuple):
    new_spot_price: int


class DeltaUpdate(NamedTuple):
    new_delta: int


class FeeUpdate(NamedTuple):
    new_fee: int


class AssetRecipientChange(NamedTuple):
    new_recipient: str


class TokenDeposit(NamedTuple):
    amount: int


class TokenWithdrawal(NamedTuple):
    amount: int


class OwnershipTransferred(NamedTuple):
    previous_owner: str
    new_owner: str


# ── swaps: ERC721 carries ids, ERC1155 only counts ─────────────────────

class SwapNFTOutPairIds(NamedTuple):
    """BUY: trader pays ``amount_in`` and receives ``ids`` from the pool."""
    amount_in: int
    ids: list[int]


class SwapNFTInPairIds(NamedTuple):
    """SELL: trader sends ``ids`` to the pool and receives ``amount_out``."""
    amount_out: int
    ids: list[int]


class NFTWithdrawalIds(NamedTuple):
    ids: list[int]


class SwapNFTOutPairCount(NamedTuple):
    amount_in: int
    num_nfts: int


class SwapNFTInPairCount(NamedTuple):
    amount_out: int
    num_nfts: int


class NFTWithdrawalCount(NamedTuple):
    num_nfts: int


DecodedEvent = Union[
    NewERC721Pair,
    NewERC1155Pair,
    ERC20Deposit,
    NFTDeposit,
    ERC1155Deposit,
    ProtocolFeeRecipientUpdate,
    ProtocolFeeMultiplierUpdate,
    BondingCurveStatusUpdate,
    RouterStatusUpdate,
    CallTargetStatusUpdate,
    SpotPriceUpdate,
    DeltaUpdate,
    FeeUpdate,
    AssetRecipientChange,
    TokenDeposit,
    TokenWithdrawal,
    OwnershipTransferred,
    SwapNFTOutPairIds,
    SwapNFTInPairIds,
    NFTWithdrawalIds,
    SwapNFTOutPairCount,
    SwapNFTInPairCount,
    NFTWithdrawalCount,
]
