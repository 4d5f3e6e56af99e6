class IndexerError(Exception):
    """Base class for errors raised by the indexer core."""


class DecodeError(IndexerError):
    """A raw event could not be turned into a typed record."""


class SpanOverrunError(DecodeError):
    """A span declared more elements than the array holds."""

    def __init__(self, start: int, count: int, available: int):
        self.start = start
        self.count = count
        self.available = available
        super().__init__(
            f"span at index {start} declares {count} u256 values "
            f"({2 * count} felts) but only {available} felts follow"
        )
