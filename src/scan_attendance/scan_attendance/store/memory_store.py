from __future__ import annotations

import copy
import threading
from typing import Optional, Sequence

from ..core.exceptions import ConflictError, StoreError
from .base import ChangeCallback, ChangeEvent, Document, OpKind, Subscription, SubscriptionHub, WriteBatch, parent_of


class InMemoryRecordStore:
    """Thread-safe document store kept in process memory.

    Used by the test-suite and by the ``memory`` store backend.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._docs: dict[str, tuple[int, dict]] = {}
        # last version of each deleted path; a recreated document continues from it
        self._tombstones: dict[str, int] = {}
        self._hub = SubscriptionHub()

    def get(self, path: str) -> Optional[Document]:
        with self._lock:
            entry = self._docs.get(path)
            if entry is None:
                return None
            version, data = entry
            return Document(path=path, data=copy.deepcopy(data), version=version)

    def list(self, collection: str) -> Sequence[Document]:
        collection = collection.rstrip("/")
        with self._lock:
            return [
                Document(path=path, data=copy.deepcopy(data), version=version)
                for path, (version, data) in sorted(self._docs.items())
                if parent_of(path) == collection
            ]

    def commit(self, batch: WriteBatch) -> None:
        events: list[ChangeEvent] = []
        with self._lock:
            for op in batch.ops:
                current = self._docs.get(op.path)
                current_version = current[0] if current else 0
                if op.expected_version is not None and op.expected_version != current_version:
                    raise ConflictError(
                        f"{op.path}: expected version {op.expected_version}, found {current_version}"
                    )
                if op.kind == OpKind.UPDATE and current is None:
                    raise ConflictError(f"{op.path}: cannot update a missing document")

            # Preconditions hold; apply against a working copy so ops on the same path compose.
            staged = dict(self._docs)
            tombstones = dict(self._tombstones)
            touched: list[str] = []
            for op in batch.ops:
                current = staged.get(op.path)
                if op.kind == OpKind.REQUIRE:
                    continue
                if op.kind == OpKind.DELETE:
                    if current is not None:
                        tombstones[op.path] = current[0]
                    staged.pop(op.path, None)
                elif op.kind == OpKind.SET:
                    base = current[0] if current else tombstones.get(op.path, 0)
                    staged[op.path] = (base + 1, copy.deepcopy(op.data))
                elif op.kind == OpKind.UPDATE:
                    if current is None:
                        raise StoreError(f"{op.path}: document vanished inside batch")
                    merged = copy.deepcopy(current[1])
                    merged.update(copy.deepcopy(op.data))
                    staged[op.path] = (current[0] + 1, merged)
                if op.path not in touched:
                    touched.append(op.path)
            self._docs = staged
            self._tombstones = tombstones

            for path in touched:
                entry = self._docs.get(path)
                doc = Document(path=path, data=copy.deepcopy(entry[1]), version=entry[0]) if entry else None
                events.append(ChangeEvent(path=path, document=doc))

        self._hub.publish(events)

    def compare_and_set(self, path: str, data: dict, *, expected_version: int) -> bool:
        try:
            self.commit(WriteBatch().set(path, data, expected_version=expected_version))
        except ConflictError:
            return False
        return True

    def subscribe(self, path: str, callback: ChangeCallback) -> Subscription:
        return self._hub.add(path, callback)
