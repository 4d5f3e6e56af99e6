# models/pools.py
from sqlalchemy import Column, Integer, BigInteger, Text, Boolean, DateTime, Index
from sudo_indexer.storage.base import Base


class Pool(Base):
    __tablename__ = "pools"

    id               = Column(Integer, primary_key=True)
    address          = Column(Text, nullable=False, unique=True)   # 0x + 64 hex
    nft_address      = Column(Text, nullable=False)
    token_address    = Column(Text, nullable=False)
    bonding_curve    = Column(Text, nullable=False)
    pool_type        = Column(Text, nullable=False)                # TOKEN / NFT / TRADE
    nft_type         = Column(Text, nullable=False)                # ERC721 / ERC1155
    property_checker = Column(Text, nullable=True)                 # ERC721 only
    erc1155_id       = Column(Text, nullable=True)                 # ERC1155 only
    # u128 / u256 values, decimal text
    spot_price       = Column(Text, nullable=False, default="0")
    delta            = Column(Text, nullable=False, default="0")
    fee              = Column(Text, nullable=False, default="0")
    owner            = Column(Text, nullable=False)
    asset_recipient  = Column(Text, nullable=True)                 # NULL → owner
    token_balance    = Column(Text, nullable=False, default="0")
    nft_count        = Column(BigInteger, nullable=False, default=0)
    is_active        = Column(Boolean, nullable=False, default=True)
    created_at       = Column(DateTime(timezone=True), nullable=True)
    updated_at       = Column(DateTime(timezone=True), nullable=True)
    # last mutation, for reorg bookkeeping
    block_number     = Column(BigInteger, nullable=False)
    transaction_hash = Column(Text, nullable=False)

    __table_args__ = (
        Index("ix_pools_nft_address", "nft_address"),
        Index("ix_pools_owner", "owner"),
        Index("ix_pools_nft_type_active", "nft_type", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<Pool {self.nft_type} {self.address} nfts={self.nft_count} bal={self.token_balance}>"
