from sqlalchemy import Column, Integer, BigInteger, Text, DateTime, Index, UniqueConstraint
from sudo_indexer.storage.base import Base


class Swap(Base):
    """One row per buy/sell against a pool.

    ``direction`` is from the trader's side: BUY means NFTs left the pool and
    ``token_amount`` came in, SELL the reverse. ``nft_ids`` is a JSON array of
    decimal strings for ERC721 pools and NULL for ERC1155 pools.
    """
    __tablename__ = "swaps"

    id               = Column(Integer, primary_key=True, autoincrement=True)
    pool_address     = Column(Text, nullable=False)
    direction        = Column(Text, nullable=False)
    token_amount     = Column(Text, nullable=False)
    nft_count        = Column(BigInteger, nullable=False)
    nft_ids          = Column(Text, nullable=True)
    block_number     = Column(BigInteger, nullable=False)
    transaction_hash = Column(Text, nullable=False)
    event_index      = Column(Integer, nullable=False)
    timestamp        = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        # make (block, tx, event_index) globally unique for dedup
        UniqueConstraint("block_number", "transaction_hash", "event_index",
                         name="uq_swaps_block_tx_event"),
        Index("ix_swaps_pool_timestamp", "pool_address", "timestamp"),
    )
