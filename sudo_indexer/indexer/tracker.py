from enum import Enum
from typing import Iterable
import backoff
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sudo_indexer.indexer.felt import Felt, to_address
from sudo_indexer.storage.models.pools import Pool
import logging

log = logging.getLogger(__name__)


class EventSource(str, Enum):
    FACTORY = "FACTORY"
    PAIR = "PAIR"
    UNKNOWN = "UNKNOWN"


class PairAddressTracker:
    """Known pool addresses, used to classify where an event came from.

    Only a cache over ``pools.address``: call ``load`` after every restart,
    otherwise pool events are classified UNKNOWN and dropped.
    """

    def __init__(self, factory_address: Felt, pairs: Iterable[Felt] = ()):
        self.factory_address = to_address(factory_address)
        self._pairs: set[str] = {to_address(p) for p in pairs}

    @backoff.on_exception(backoff.expo, OperationalError, max_tries=5)
    def load(self, session: Session) -> int:
        rows = session.execute(select(Pool.address)).scalars().all()
        self._pairs = {to_address(address) for address in rows}
        log.info(f"Loaded {len(self._pairs)} existing pair addresses")
        return len(self._pairs)

    def add(self, address: Felt) -> None:
        self._pairs.add(to_address(address))

    def classify(self, address: Felt) -> EventSource:
        normalized = to_address(address)
        if normalized == self.factory_address:
            return EventSource.FACTORY
        if normalized in self._pairs:
            return EventSource.PAIR
        return EventSource.UNKNOWN

    def __contains__(self, address: Felt) -> bool:
        return to_address(address) in self._pairs

    def __len__(self) -> int:
        return len(self._pairs)
