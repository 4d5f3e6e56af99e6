from sqlalchemy import Column, Integer, BigInteger, Text, DateTime, UniqueConstraint
from sudo_indexer.storage.base import Base


class ProtocolSetting(Base):
    __tablename__ = "protocol_settings"

    id               = Column(Integer, primary_key=True, autoincrement=True)
    setting_type     = Column(Text, nullable=False)   # FEE_RECIPIENT / FEE_MULTIPLIER / *_STATUS
    address          = Column(Text, nullable=True)    # curve / router / recipient
    value            = Column(Text, nullable=False)
    block_number     = Column(BigInteger, nullable=False)
    transaction_hash = Column(Text, nullable=False)
    event_index      = Column(Integer, nullable=False)
    timestamp        = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("block_number", "transaction_hash", "event_index",
                         name="uq_protocol_settings_block_tx_event"),
    )
