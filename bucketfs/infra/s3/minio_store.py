from __future__ import annotations

import io
from contextlib import contextmanager
from dataclasses import dataclass
from itertools import islice
from typing import Iterator, Optional, Sequence

from minio import Minio
from minio.commonconfig import CopySource
from minio.datatypes import Part
from minio.error import S3Error

from bucketfs.application.ports.object_store_port import (
    ListPage,
    ObjectInfo,
    ObjectStorePort,
    UploadedPart,
)
from bucketfs.errors import ObjectNotFound

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NoSuchObject", "NotFound", "ResourceNotFound"})


def is_not_found(exc: S3Error) -> bool:
    """Indica se o erro S3 corresponde a um objeto inexistente (404 de chave).

    NoSuchBucket não é tratado como ausência de objeto.
    """
    return exc.code in _NOT_FOUND_CODES


@contextmanager
def _not_found_as(key: str) -> Iterator[None]:
    try:
        yield
    except S3Error as exc:
        if is_not_found(exc):
            raise ObjectNotFound(key) from exc
        raise


@dataclass
class MinioObjectStore(ObjectStorePort):
    """Cliente de armazenamento de objetos baseado no SDK MinIO."""

    client: Minio

    def put_object(
        self, bucket: str, key: str, data: bytes, content_type: str = "application/octet-stream"
    ) -> None:
        """Envia bytes para a chave informada."""
        self.client.put_object(
            bucket, key, data=io.BytesIO(data), length=len(data), content_type=content_type
        )

    def get_object(self, bucket: str, key: str) -> bytes:
        """Lê bytes brutos de um objeto no S3."""
        with _not_found_as(key):
            resp = self.client.get_object(bucket, key)
        try:
            data = resp.read()
        finally:
            resp.close()
            resp.release_conn()
        return data

    def get_object_range(self, bucket: str, key: str, start: int, end: int) -> bytes:
        """Lê a faixa ``[start, end)``; length=0 no MinIO significaria 'até o fim'."""
        if end <= start:
            return b""
        with _not_found_as(key):
            resp = self.client.get_object(bucket, key, offset=start, length=end - start)
        try:
            data = resp.read()
        finally:
            resp.close()
            resp.release_conn()
        return data

    def head_object(self, bucket: str, key: str) -> ObjectInfo:
        with _not_found_as(key):
            stat = self.client.stat_object(bucket, key)
        return ObjectInfo(
            key=key, size=stat.size or 0, last_modified=stat.last_modified, etag=stat.etag
        )

    def delete_object(self, bucket: str, key: str) -> None:
        """Remove um objeto específico do bucket."""
        with _not_found_as(key):
            self.client.remove_object(bucket, key)

    def list_objects(
        self, bucket: str, prefix: str, page_token: Optional[str] = None, max_keys: int = 1000
    ) -> ListPage:
        """Lista uma página de objetos; o token é a última chave da página anterior."""
        objects = self.client.list_objects(
            bucket, prefix=prefix or None, recursive=True, start_after=page_token
        )
        entries = [
            ObjectInfo(
                key=obj.object_name,
                size=obj.size or 0,
                last_modified=obj.last_modified,
                etag=obj.etag,
            )
            for obj in islice(objects, max_keys)
        ]
        # página cheia: a próxima chamada retoma após a última chave
        next_token = entries[-1].key if len(entries) == max_keys else None
        return ListPage(entries=entries, next_token=next_token)

    def copy_object(self, bucket: str, dest_key: str, src_bucket: str, src_key: str) -> None:
        """Copia um objeto do lado do servidor."""
        with _not_found_as(src_key):
            self.client.copy_object(bucket, dest_key, CopySource(src_bucket, src_key))

    def initiate_multipart(self, bucket: str, key: str) -> str:
        headers = {"Content-Type": "application/octet-stream"}
        return self.client._create_multipart_upload(bucket, key, headers)

    def upload_part(self, bucket: str, key: str, upload_id: str, index: int, data: bytes) -> str:
        return self.client._upload_part(bucket, key, data, None, upload_id, index)

    def complete_multipart(
        self, bucket: str, key: str, upload_id: str, parts: Sequence[UploadedPart]
    ) -> None:
        minio_parts = [Part(part.index, part.etag) for part in parts]
        self.client._complete_multipart_upload(bucket, key, upload_id, minio_parts)

    def abort_multipart(self, bucket: str, key: str, upload_id: str) -> None:
        self.client._abort_multipart_upload(bucket, key, upload_id)
