from sqlalchemy import Column, Integer, BigInteger, Text, DateTime, UniqueConstraint
from sudo_indexer.storage.base import Base


class PoolNft(Base):
    __tablename__ = "pool_nfts"

    id           = Column(Integer, primary_key=True, autoincrement=True)
    pool_address = Column(Text, nullable=False)
    token_id     = Column(Text, nullable=False)    # u256, decimal text
    added_at     = Column(DateTime(timezone=True), nullable=True)
    block_number = Column(BigInteger, nullable=False)

    __table_args__ = (
        UniqueConstraint("pool_address", "token_id", name="uq_pool_nfts_pool_token"),
    )
