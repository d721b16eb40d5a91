from __future__ import annotations

import sys
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional, Sequence

import pytest

# Garante que o pacote bucketfs seja importável a partir da raiz do repositório
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from bucketfs.application.ports.object_store_port import ListPage, ObjectInfo, UploadedPart  # noqa: E402
from bucketfs.errors import ObjectNotFound  # noqa: E402

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class InMemoryStore:
    """Armazenamento de objetos em memória que registra as chamadas recebidas."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], tuple[bytes, datetime]] = {}
        self.calls: list[tuple] = []
        self.uploads: dict[str, dict] = {}
        self.failures: list[tuple[str, Callable[..., bool], Exception]] = []
        self._lock = threading.Lock()
        self._clock = 0

    def fail(
        self,
        op: str,
        error: Exception,
        when: Optional[Callable[..., bool]] = None,
        nth: Optional[int] = None,
    ) -> None:
        """Faz a operação 'op' lançar 'error' (sempre, quando 'when' casar ou na n-ésima chamada)."""
        if nth is not None:
            self.failures.append((op, lambda *_args: len(self.ops(op)) == nth, error))
        else:
            self.failures.append((op, when or (lambda *_args: True), error))

    def _record(self, *call: object) -> None:
        with self._lock:
            self.calls.append(call)
            for op, predicate, error in self.failures:
                if op == call[0] and predicate(*call[1:]):
                    raise error

    def _now(self) -> datetime:
        with self._lock:
            self._clock += 1
            return BASE_TIME + timedelta(seconds=self._clock)

    def seed(self, bucket: str, key: str, data: bytes, mtime: Optional[datetime] = None) -> None:
        self.objects[(bucket, key)] = (data, mtime or self._now())

    def ops(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    def put_object(self, bucket, key, data, content_type="application/octet-stream"):
        self._record("put_object", bucket, key, content_type)
        self.objects[(bucket, key)] = (bytes(data), self._now())

    def get_object(self, bucket, key):
        self._record("get_object", bucket, key)
        if (bucket, key) not in self.objects:
            raise ObjectNotFound(key)
        return self.objects[(bucket, key)][0]

    def get_object_range(self, bucket, key, start, end):
        self._record("get_object_range", bucket, key, start, end)
        if (bucket, key) not in self.objects:
            raise ObjectNotFound(key)
        return self.objects[(bucket, key)][0][start:end]

    def head_object(self, bucket, key):
        self._record("head_object", bucket, key)
        if (bucket, key) not in self.objects:
            raise ObjectNotFound(key)
        data, mtime = self.objects[(bucket, key)]
        return ObjectInfo(key=key, size=len(data), last_modified=mtime)

    def delete_object(self, bucket, key):
        self._record("delete_object", bucket, key)
        with self._lock:
            self.objects.pop((bucket, key), None)

    def list_objects(self, bucket, prefix, page_token=None, max_keys=1000):
        self._record("list_objects", bucket, prefix, page_token, max_keys)
        with self._lock:
            snapshot = {k: v for (b, k), v in self.objects.items() if b == bucket}
        keys = sorted(k for k in snapshot if k.startswith(prefix))
        if page_token is not None:
            keys = [k for k in keys if k > page_token]
        page = keys[:max_keys]
        entries = [
            ObjectInfo(key=k, size=len(snapshot[k][0]), last_modified=snapshot[k][1]) for k in page
        ]
        next_token = page[-1] if len(keys) > max_keys else None
        return ListPage(entries=entries, next_token=next_token)

    def copy_object(self, bucket, dest_key, src_bucket, src_key):
        self._record("copy_object", bucket, dest_key, src_bucket, src_key)
        if (src_bucket, src_key) not in self.objects:
            raise ObjectNotFound(src_key)
        self.objects[(bucket, dest_key)] = (self.objects[(src_bucket, src_key)][0], self._now())

    def initiate_multipart(self, bucket, key):
        self._record("initiate_multipart", bucket, key)
        upload_id = f"upload-{len(self.uploads) + 1}"
        self.uploads[upload_id] = {"parts": {}, "state": "open"}
        return upload_id

    def upload_part(self, bucket, key, upload_id, index, data):
        self._record("upload_part", bucket, key, upload_id, index, len(data))
        self.uploads[upload_id]["parts"][index] = bytes(data)
        return f"etag-{index}"

    def complete_multipart(self, bucket, key, upload_id, parts: Sequence[UploadedPart]):
        self._record("complete_multipart", bucket, key, upload_id, [(p.index, p.etag) for p in parts])
        stored = self.uploads[upload_id]["parts"]
        for part in parts:
            assert part.etag == f"etag-{part.index}"
        payload = b"".join(stored[part.index] for part in parts)
        self.uploads[upload_id]["state"] = "completed"
        self.objects[(bucket, key)] = (payload, self._now())

    def abort_multipart(self, bucket, key, upload_id):
        self._record("abort_multipart", bucket, key, upload_id)
        self.uploads[upload_id]["state"] = "aborted"


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()
