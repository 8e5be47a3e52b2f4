# manga_studio/lib/store.py
"""
Plain key-value record store: one JSON document per record.

    <root>/<kind>/<id>.json
    <root>/<kind>/_by_<field>/<value>/<id>     index marker (empty file)
    <root>/<kind>/_once/<key>                 create-once marker

Every write replaces the whole document with ``os.replace`` so a reader sees
either the previous or the next version, never a mix of both. Read-modify-write
sequences are serialized with per-key locks; there are no multi-key
transactions.

Indexed fields are set on insert and must never be patched. The index marker is
written before the record, so a record visible by scan is visible by index too.
"""
from __future__ import annotations

import json
import os
import re
import threading
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

Record = Dict[str, Any]


def new_id() -> str:
    return uuid.uuid4().hex


def _valid_key(value: Any) -> bool:
    return isinstance(value, str) and bool(_ID_RE.match(value))


class RecordStore:
    def __init__(self, root: str, indexes: Optional[Mapping[str, Sequence[str]]] = None):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.indexes: Dict[str, tuple] = {k: tuple(v) for k, v in (indexes or {}).items()}
        # key -> [lock, holders]; dropped when the last holder leaves
        self._locks: Dict[str, list] = {}
        self._locks_guard = threading.Lock()
        self._clock_guard = threading.Lock()
        self._last_ns = 0

    # ------------------------------------------------------------------
    # locking / clock
    # ------------------------------------------------------------------

    @contextmanager
    def locked(self, key: str) -> Iterator[None]:
        """Hold the lock for an arbitrary key, e.g. "jobs-page:<page_id>"."""
        with self._locks_guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.RLock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def lock_count(self) -> int:
        with self._locks_guard:
            return len(self._locks)

    def now_ns(self) -> int:
        """Wall clock in ns, strictly increasing within this store."""
        with self._clock_guard:
            now = max(time.time_ns(), self._last_ns + 1)
            self._last_ns = now
            return now

    # ------------------------------------------------------------------
    # file IO
    # ------------------------------------------------------------------

    def _dir(self, kind: str) -> Path:
        d = self.root / kind
        d.mkdir(parents=True, exist_ok=True)
        return d

    def _path(self, kind: str, record_id: str) -> Optional[Path]:
        if not isinstance(record_id, str) or not _ID_RE.match(record_id):
            return None
        return self._dir(kind) / f"{record_id}.json"

    def _read(self, path: Path) -> Optional[Record]:
        try:
            with open(path, "r") as f:
                return json.load(f)
        except FileNotFoundError:
            return None

    def _index_dir(self, kind: str, field: str, value: str) -> Path:
        return self._dir(kind) / f"_by_{field}" / value

    def _write_index(self, kind: str, record: Record) -> None:
        for field in self.indexes.get(kind, ()):
            value = record.get(field)
            if not _valid_key(value):
                continue
            d = self._index_dir(kind, field, value)
            d.mkdir(parents=True, exist_ok=True)
            (d / record["id"]).touch()

    def _candidates(self, kind: str, equals: Mapping[str, Any]) -> Iterable[Path]:
        for field in self.indexes.get(kind, ()):
            value = equals.get(field)
            if _valid_key(value):
                d = self._index_dir(kind, field, value)
                if not d.is_dir():
                    return []
                return [self._dir(kind) / f"{name}.json" for name in os.listdir(d)]
        return self._dir(kind).glob("*.json")

    def _write(self, path: Path, record: Record) -> None:
        tmp = path.with_name(f".{path.stem}.{uuid.uuid4().hex}.tmp")
        with open(tmp, "w") as f:
            json.dump(record, f, indent=2)
        os.replace(tmp, path)

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------

    def insert(self, kind: str, record: Record) -> str:
        record_id = record.get("id") or new_id()
        path = self._path(kind, record_id)
        if path is None:
            raise ValueError(f"invalid record id: {record_id!r}")
        with self.locked(f"{kind}:{record_id}"):
            if path.exists():
                raise ValueError(f"{kind} record {record_id} already exists")
            record = {**record, "id": record_id}
            self._write_index(kind, record)
            self._write(path, record)
        return record_id

    def get(self, kind: str, record_id: str) -> Optional[Record]:
        path = self._path(kind, record_id)
        if path is None:
            return None
        return self._read(path)

    def patch(self, kind: str, record_id: str, fields: Record) -> Optional[Record]:
        """
        Shallow-merge `fields` into the record and write it back in one go.
        Returns the new record, or None if it doesn't exist.
        """
        frozen = set(fields) & set(self.indexes.get(kind, ()))
        if frozen:
            raise ValueError(f"indexed fields of {kind} cannot be patched: {sorted(frozen)}")
        path = self._path(kind, record_id)
        if path is None:
            return None
        with self.locked(f"{kind}:{record_id}"):
            current = self._read(path)
            if current is None:
                return None
            current.update(fields)
            current["id"] = record_id
            self._write(path, current)
            return current

    def update(
        self,
        kind: str,
        record_id: str,
        mutate: Callable[[Record], Optional[Record]],
    ) -> Optional[Record]:
        """
        Read-modify-write under the record's lock. `mutate` gets the current
        record and returns the fields to merge (or None to leave it untouched).
        """
        path = self._path(kind, record_id)
        if path is None:
            return None
        with self.locked(f"{kind}:{record_id}"):
            current = self._read(path)
            if current is None:
                return None
            fields = mutate(dict(current))
            if fields is None:
                return current
            return self.patch(kind, record_id, fields)

    def find(
        self,
        kind: str,
        where: Optional[Callable[[Record], bool]] = None,
        **equals: Any,
    ) -> List[Record]:
        out: List[Record] = []
        for p in self._candidates(kind, equals):
            rec = self._read(p)
            if rec is None:
                continue
            if any(rec.get(k) != v for k, v in equals.items()):
                continue
            if where is not None and not where(rec):
                continue
            out.append(rec)
        return out

    def count(self, kind: str, **equals: Any) -> int:
        return len(self.find(kind, **equals))

    def mark_once(self, kind: str, key: str) -> bool:
        """
        Create the marker <root>/<kind>/_once/<key>. True only for the first
        caller across every process sharing this root (O_EXCL create).
        """
        if not _valid_key(key):
            raise ValueError(f"invalid marker key: {key!r}")
        d = self._dir(kind) / "_once"
        d.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(d / key, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            return False
        os.close(fd)
        return True
