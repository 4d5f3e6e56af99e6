from sqlalchemy import Column, Integer, BigInteger, Text, DateTime, Index, UniqueConstraint
from sudo_indexer.storage.base import Base


class PoolUpdate(Base):
    __tablename__ = "pool_updates"

    id               = Column(Integer, primary_key=True, autoincrement=True)
    pool_address     = Column(Text, nullable=False)
    update_type      = Column(Text, nullable=False)   # SPOT_PRICE / DELTA / FEE / ASSET_RECIPIENT / OWNER
    old_value        = Column(Text, nullable=True)    # NULL when the pool row was unknown
    new_value        = Column(Text, nullable=False)
    block_number     = Column(BigInteger, nullable=False)
    transaction_hash = Column(Text, nullable=False)
    event_index      = Column(Integer, nullable=False)
    timestamp        = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("block_number", "transaction_hash", "event_index",
                         name="uq_pool_updates_block_tx_event"),
        Index("ix_pool_updates_pool_address", "pool_address"),
    )
