"""
Base Repository - Cocoa Contest Evaluation Engine
cocoa_contest/repositories/base.py

Versioned in-memory store with conditional (compare-and-set) commits, and the
base repository class the entity repositories build on.
"""

import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, Generic, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel

from cocoa_contest.core.exceptions import (
    DuplicateEntityException,
    EntityNotFoundException,
    StaleWrite,
)

T = TypeVar("T", bound=BaseModel)


@dataclass(frozen=True)
class Change:
    """
    One record write inside a commit.

    expected_version None means insert; otherwise the stored version must
    still equal expected_version when the commit applies.
    """

    collection: str
    record: BaseModel
    expected_version: Optional[int] = None
    delete: bool = False


class VersionedStore:
    """Collections of versioned records keyed by id, guarded by one lock."""

    def __init__(self):
        self._lock = threading.RLock()
        self._data: Dict[str, Dict[str, BaseModel]] = defaultdict(dict)

    def get(self, collection: str, entity_id: str) -> Optional[BaseModel]:
        with self._lock:
            record = self._data[collection].get(entity_id)
            return record.model_copy(deep=True) if record is not None else None

    def list(
        self,
        collection: str,
        predicate: Optional[Callable[[BaseModel], bool]] = None,
    ) -> List[BaseModel]:
        with self._lock:
            records = list(self._data[collection].values())
            return [
                r.model_copy(deep=True)
                for r in records
                if predicate is None or predicate(r)
            ]

    def commit(self, changes: Sequence[Change]) -> List[BaseModel]:
        """
        Apply all changes atomically.

        Every precondition is checked before any record is written, so a
        failed commit leaves the store untouched.

        Raises:
            StaleWrite: a record changed (or vanished) since it was read
            DuplicateEntityException: an insert collides with an existing id
        """
        with self._lock:
            for change in changes:
                entity_id = change.record.id
                current = self._data[change.collection].get(entity_id)
                if change.expected_version is None:
                    if current is not None:
                        raise DuplicateEntityException(
                            f"{change.collection} with ID {entity_id} already exists"
                        )
                    continue
                actual = current.version if current is not None else None
                if actual != change.expected_version:
                    raise StaleWrite(change.collection, entity_id, change.expected_version, actual)

            written: List[BaseModel] = []
            for change in changes:
                entity_id = change.record.id
                if change.delete:
                    del self._data[change.collection][entity_id]
                    continue
                next_version = 0 if change.expected_version is None else change.expected_version + 1
                stored = change.record.model_copy(update={"version": next_version}, deep=True)
                self._data[change.collection][entity_id] = stored
                written.append(stored.model_copy(deep=True))
            return written

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class BaseRepository(Generic[T]):
    """Base repository over one collection of the versioned store."""

    COLLECTION: str = ""
    ENTITY_TYPE: str = ""
    MODEL: Type[T]

    def __init__(self, store: VersionedStore):
        self.store = store

    def get_by_id(self, entity_id: str) -> Optional[T]:
        return self.store.get(self.COLLECTION, entity_id)

    def require(self, entity_id: str) -> T:
        """Get a record or raise EntityNotFoundException."""
        record = self.get_by_id(entity_id)
        if record is None:
            raise EntityNotFoundException(self.ENTITY_TYPE, entity_id)
        return record

    def exists(self, entity_id: str) -> bool:
        return self.get_by_id(entity_id) is not None

    def get_all(self) -> List[T]:
        return self.store.list(self.COLLECTION)

    def filter(self, predicate: Callable[[T], bool]) -> List[T]:
        return self.store.list(self.COLLECTION, predicate)

    def create(self, record: T) -> T:
        return self.store.commit([self.insert_change(record)])[0]

    def update(self, record: T) -> T:
        """Conditional update keyed on the record's version at read time."""
        return self.store.commit([self.update_change(record)])[0]

    def delete(self, record: T) -> None:
        self.store.commit([self.delete_change(record)])

    # Change builders for multi-record commits

    def insert_change(self, record: T) -> Change:
        return Change(self.COLLECTION, record)

    def update_change(self, record: T) -> Change:
        return Change(self.COLLECTION, record, expected_version=record.version)

    def delete_change(self, record: T) -> Change:
        return Change(self.COLLECTION, record, expected_version=record.version, delete=True)
