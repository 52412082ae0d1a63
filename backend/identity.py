import itertools
import uuid
from typing import Protocol


class IdProvider(Protocol):
    def new_id(self) -> str:
        ...


class UuidIds:
    """Random uuid4 identities. Default provider."""

    def new_id(self) -> str:
        return str(uuid.uuid4())


class SequentialIds:
    """Deterministic identities: prefix-1, prefix-2, ... Used by tests."""

    def __init__(self, prefix: str = "id"):
        self.prefix = prefix
        self._counter = itertools.count(1)

    def new_id(self) -> str:
        return f"{self.prefix}-{next(self._counter)}"


default_ids = UuidIds()
