from __future__ import annotations

import logging
from typing import Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import ConflictError, StoreError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .base import ChangeCallback, ChangeEvent, Document, OpKind, Subscription, SubscriptionHub, WriteBatch, parent_of

logger = logging.getLogger(__name__)

# Deadlocks between racing creates and duplicate inserts are write races, not outages.
_CONFLICT_ERRNOS = (errorcode.ER_LOCK_DEADLOCK, errorcode.ER_DUP_ENTRY)


class MySQLRecordStore:
    """Document store on a single ``documents`` table.

    A batch runs in one transaction; rows named by a precondition are locked
    with ``SELECT ... FOR UPDATE`` before anything is written. Deleted paths
    leave a tombstone so a recreated document never reuses an old version. Change
    notifications reach subscribers of this process only.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory
        self._hub = SubscriptionHub()

    def get(self, path: str) -> Optional[Document]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("SELECT path, version, body FROM documents WHERE path=%s", (path,))
                row = fetchone(cur)
        except mysql.connector.Error as exc:
            raise StoreError(f"get {path} failed: {exc}") from exc
        if not row:
            return None
        return Document(path=row["path"], data=load_json(row["body"]), version=int(row["version"]))

    def list(self, collection: str) -> Sequence[Document]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "SELECT path, version, body FROM documents WHERE collection=%s ORDER BY path",
                    (collection.rstrip("/"),),
                )
                rows = fetchall(cur)
        except mysql.connector.Error as exc:
            raise StoreError(f"list {collection} failed: {exc}") from exc
        return [Document(path=r["path"], data=load_json(r["body"]), version=int(r["version"])) for r in rows]

    def commit(self, batch: WriteBatch) -> None:
        touched: list[str] = []
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                versions: dict[str, int] = {}
                for op in batch.ops:
                    if op.path in versions:
                        continue
                    cur.execute("SELECT version FROM documents WHERE path=%s FOR UPDATE", (op.path,))
                    row = fetchone(cur)
                    versions[op.path] = int(row["version"]) if row else 0

                for op in batch.ops:
                    current_version = versions[op.path]
                    if op.expected_version is not None and op.expected_version != current_version:
                        raise ConflictError(
                            f"{op.path}: expected version {op.expected_version}, found {current_version}"
                        )
                    if op.kind == OpKind.UPDATE and current_version == 0:
                        raise ConflictError(f"{op.path}: cannot update a missing document")

                for op in batch.ops:
                    if op.kind == OpKind.REQUIRE:
                        continue
                    if op.kind == OpKind.DELETE:
                        if versions[op.path]:
                            cur.execute(
                                """
                                INSERT INTO document_tombstones (path, version) VALUES (%s, %s)
                                ON DUPLICATE KEY UPDATE version=VALUES(version)
                                """,
                                (op.path, versions[op.path]),
                            )
                        cur.execute("DELETE FROM documents WHERE path=%s", (op.path,))
                        versions[op.path] = 0
                    elif op.kind == OpKind.SET:
                        version = (versions[op.path] or self._tombstone_version(cur, op.path)) + 1
                        cur.execute(
                            """
                            INSERT INTO documents (path, collection, version, body)
                            VALUES (%s, %s, %s, %s)
                            ON DUPLICATE KEY UPDATE version=VALUES(version), body=VALUES(body)
                            """,
                            (op.path, parent_of(op.path), version, dump_json(op.data)),
                        )
                        versions[op.path] = version
                    elif op.kind == OpKind.UPDATE:
                        cur.execute("SELECT body FROM documents WHERE path=%s", (op.path,))
                        merged = load_json(fetchone(cur)["body"])
                        merged.update(op.data)
                        cur.execute(
                            "UPDATE documents SET version=version+1, body=%s WHERE path=%s",
                            (dump_json(merged), op.path),
                        )
                        versions[op.path] += 1
                    if op.path not in touched:
                        touched.append(op.path)
        except mysql.connector.Error as exc:
            if exc.errno in _CONFLICT_ERRNOS:
                raise ConflictError(f"batch commit lost a race: {exc}") from exc
            raise StoreError(f"batch commit failed: {exc}") from exc

        self._hub.publish([ChangeEvent(path=p, document=self.get(p)) for p in touched])

    @staticmethod
    def _tombstone_version(cur, path: str) -> int:
        cur.execute("SELECT version FROM document_tombstones WHERE path=%s FOR UPDATE", (path,))
        row = fetchone(cur)
        return int(row["version"]) if row else 0

    def compare_and_set(self, path: str, data: dict, *, expected_version: int) -> bool:
        try:
            self.commit(WriteBatch().set(path, data, expected_version=expected_version))
        except ConflictError:
            logger.debug("compare_and_set lost race on %s", path)
            return False
        return True

    def subscribe(self, path: str, callback: ChangeCallback) -> Subscription:
        return self._hub.add(path, callback)
