# selectors.py
# --------------------------------------------------------------
# Event name → selector registry.
#
# Starknet selectors are sn_keccak(name): keccak-256 of the ASCII name
# truncated to its low 250 bits, rendered zero-padded like every other
# felt we compare (see felt.to_hex).
# --------------------------------------------------------------
from enum import Enum
from types import MappingProxyType
from eth_utils import keccak
from sudo_indexer.indexer.felt import FELT_HEX_WIDTH

MASK_250 = (1 << 250) - 1


class EventFamily(str, Enum):
    FACTORY = "FACTORY"
    PAIR = "PAIR"


class EventKind(str, Enum):
    # factory
    NEW_ERC721_PAIR = "NewERC721Pair"
    NEW_ERC1155_PAIR = "NewERC1155Pair"
    ERC20_DEPOSIT = "ERC20Deposit"
    NFT_DEPOSIT = "NFTDeposit"
    ERC1155_DEPOSIT = "ERC1155Deposit"
    PROTOCOL_FEE_RECIPIENT_UPDATE = "ProtocolFeeRecipientUpdate"
    PROTOCOL_FEE_MULTIPLIER_UPDATE = "ProtocolFeeMultiplierUpdate"
    BONDING_CURVE_STATUS_UPDATE = "BondingCurveStatusUpdate"
    ROUTER_STATUS_UPDATE = "RouterStatusUpdate"
    CALL_TARGET_STATUS_UPDATE = "CallTargetStatusUpdate"
    # pair parameters
    SPOT_PRICE_UPDATE = "SpotPriceUpdate"
    DELTA_UPDATE = "DeltaUpdate"
    FEE_UPDATE = "FeeUpdate"
    ASSET_RECIPIENT_CHANGE = "AssetRecipientChange"
    TOKEN_DEPOSIT = "TokenDeposit"
    TOKEN_WITHDRAWAL = "TokenWithdrawal"
    OWNERSHIP_TRANSFERRED = "OwnershipTransferred"
    # ERC721 swaps
    SWAP_NFT_OUT_PAIR_IDS = "SwapNFTOutPairIds"
    SWAP_NFT_IN_PAIR_IDS = "SwapNFTInPairIds"
    NFT_WITHDRAWAL_IDS = "NFTWithdrawalIds"
    # ERC1155 swaps
    SWAP_NFT_OUT_PAIR_COUNT = "SwapNFTOutPairCount"
    SWAP_NFT_IN_PAIR_COUNT = "SwapNFTInPairCount"
    NFT_WITHDRAWAL_COUNT = "NFTWithdrawalCount"

    @property
    def family(self) -> EventFamily:
        return FACTORY_KINDS.get(self, EventFamily.PAIR)


FACTORY_KINDS = {
    kind: EventFamily.FACTORY
    for kind in (
        EventKind.NEW_ERC721_PAIR,
        EventKind.NEW_ERC1155_PAIR,
        EventKind.ERC20_DEPOSIT,
        EventKind.NFT_DEPOSIT,
        EventKind.ERC1155_DEPOSIT,
        EventKind.PROTOCOL_FEE_RECIPIENT_UPDATE,
        EventKind.PROTOCOL_FEE_MULTIPLIER_UPDATE,
        EventKind.BONDING_CURVE_STATUS_UPDATE,
        EventKind.ROUTER_STATUS_UPDATE,
        EventKind.CALL_TARGET_STATUS_UPDATE,
    )
}


def get_selector(name: str) -> str:
    digest = int.from_bytes(keccak(text=name), "big") & MASK_250
    return "0x" + format(digest, f"0{FELT_HEX_WIDTH}x")


EVENT_SELECTORS = MappingProxyType({kind.value: get_selector(kind.value) for kind in EventKind})

_KIND_BY_SELECTOR = MappingProxyType({EVENT_SELECTORS[kind.value]: kind for kind in EventKind})


def selector_for(kind: EventKind | str) -> str:
    """Selector of a known event; unknown names raise ``KeyError``."""
    name = kind.value if isinstance(kind, EventKind) else kind
    return EVENT_SELECTORS[name]


def kind_for_selector(selector: str) -> EventKind | None:
    """``selector`` must already be normalised with ``felt.to_hex``."""
    return _KIND_BY_SELECTOR.get(selector)
