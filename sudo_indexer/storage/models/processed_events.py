from sqlalchemy import Column, Integer, BigInteger, Text, DateTime, Index, UniqueConstraint
from sudo_indexer.storage.base import Base


class ProcessedEvent(Base):
    """Ledger of every event the projector has applied.

    A transition only runs when its ledger row is newly inserted, so
    redelivering a block never double-applies pool arithmetic.
    """
    __tablename__ = "processed_events"

    id               = Column(Integer, primary_key=True, autoincrement=True)
    block_number     = Column(BigInteger, nullable=False)
    transaction_hash = Column(Text, nullable=False)
    event_index      = Column(Integer, nullable=False)
    selector         = Column(Text, nullable=False)
    from_address     = Column(Text, nullable=False)
    processed_at     = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("block_number", "transaction_hash", "event_index",
                         name="uq_processed_events_block_tx_event"),
        Index("ix_processed_events_block_number", "block_number"),
    )
