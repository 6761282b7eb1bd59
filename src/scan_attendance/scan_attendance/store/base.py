from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional, Protocol, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Document:
    """A stored document and the version it was read at."""

    path: str
    data: dict
    version: int

    @property
    def doc_id(self) -> str:
        return self.path.rsplit("/", 1)[-1]


class OpKind(str, Enum):
    SET = "set"
    UPDATE = "update"
    DELETE = "delete"
    REQUIRE = "require"


@dataclass(frozen=True)
class BatchOp:
    kind: OpKind
    path: str
    data: Optional[dict] = None
    # None: unconditional. 0: the document must not exist. N: it must be at version N.
    expected_version: Optional[int] = None


@dataclass
class WriteBatch:
    """Writes committed all-or-nothing by ``RecordStore.commit``."""

    ops: list[BatchOp] = field(default_factory=list)

    def set(self, path: str, data: dict, *, expected_version: Optional[int] = None) -> "WriteBatch":
        self.ops.append(BatchOp(OpKind.SET, path, dict(data), expected_version))
        return self

    def create(self, path: str, data: dict) -> "WriteBatch":
        return self.set(path, data, expected_version=0)

    def update(self, path: str, fields: dict, *, expected_version: Optional[int] = None) -> "WriteBatch":
        """Shallow-merge ``fields`` into an existing document."""
        self.ops.append(BatchOp(OpKind.UPDATE, path, dict(fields), expected_version))
        return self

    def delete(self, path: str, *, expected_version: Optional[int] = None) -> "WriteBatch":
        self.ops.append(BatchOp(OpKind.DELETE, path, None, expected_version))
        return self

    def require(self, path: str, version: int) -> "WriteBatch":
        """Precondition only: fail the batch unless ``path`` is still at ``version``."""
        self.ops.append(BatchOp(OpKind.REQUIRE, path, None, int(version)))
        return self

    def __len__(self) -> int:
        return len(self.ops)


@dataclass(frozen=True)
class ChangeEvent:
    path: str
    document: Optional[Document]  # None when the document was deleted

    @property
    def deleted(self) -> bool:
        return self.document is None


ChangeCallback = Callable[[ChangeEvent], None]


class Subscription(Protocol):
    def unsubscribe(self) -> None:
        raise NotImplementedError


class RecordStore(Protocol):
    """Keyed document storage.

    Paths are slash separated: ``collection/doc_id[/sub_collection/doc_id]``.
    """

    def get(self, path: str) -> Optional[Document]:
        raise NotImplementedError

    def list(self, collection: str) -> Sequence[Document]:
        """Documents whose parent collection is exactly ``collection``."""
        raise NotImplementedError

    def commit(self, batch: WriteBatch) -> None:
        """Apply every op or none. Raises ConflictError on a failed precondition."""
        raise NotImplementedError

    def compare_and_set(self, path: str, data: dict, *, expected_version: int) -> bool:
        raise NotImplementedError

    def subscribe(self, path: str, callback: ChangeCallback) -> Subscription:
        """Push changes to ``path`` or any document below it."""
        raise NotImplementedError


def parent_of(path: str) -> str:
    return path.rsplit("/", 1)[0] if "/" in path else ""


def is_under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


class _HubSubscription:
    def __init__(self, hub: "SubscriptionHub", token: int):
        self._hub = hub
        self._token = token

    def unsubscribe(self) -> None:
        self._hub.remove(self._token)


class SubscriptionHub:
    """In-process fan-out of change events to path subscribers.

    Delivery is best effort: a failing callback is logged and the others still
    run.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._next = 0
        self._subs: dict[int, tuple[str, ChangeCallback]] = {}

    def add(self, path: str, callback: ChangeCallback) -> Subscription:
        with self._lock:
            self._next += 1
            self._subs[self._next] = (path, callback)
            return _HubSubscription(self, self._next)

    def remove(self, token: int) -> None:
        with self._lock:
            self._subs.pop(token, None)

    def publish(self, events: Iterable[ChangeEvent]) -> None:
        with self._lock:
            subs = list(self._subs.values())
        for event in events:
            for prefix, callback in subs:
                if not is_under(event.path, prefix):
                    continue
                try:
                    callback(event)
                except Exception:
                    logger.exception("Change subscriber for %s failed on %s", prefix, event.path)
