from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Sequence


@dataclass(frozen=True)
class ObjectInfo:
    """Metadados de um objeto retornados por head/list."""

    key: str
    size: int
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None


@dataclass(frozen=True)
class ListPage:
    """Uma página de listagem; ``next_token`` é None quando não há mais chaves.

    Uma página cheia pode trazer token mesmo sendo a última; a seguinte vem vazia.
    """

    entries: Sequence[ObjectInfo]
    next_token: Optional[str] = None


@dataclass(frozen=True)
class UploadedPart:
    """Parte enviada em um upload multipart (índice a partir de 1 e entity-tag)."""

    index: int
    etag: str


class ObjectStorePort(Protocol):
    """Porta de acesso ao armazenamento de objetos (S3/MinIO).

    Ausência de objeto é sinalizada com ``ObjectNotFound``; demais falhas propagam
    as exceções do cliente.
    """

    def put_object(
        self, bucket: str, key: str, data: bytes, content_type: str = "application/octet-stream"
    ) -> None:
        """Grava o objeto inteiro em uma única requisição."""
        ...

    def get_object(self, bucket: str, key: str) -> bytes:
        """Lê o conteúdo completo do objeto."""
        ...

    def get_object_range(self, bucket: str, key: str, start: int, end: int) -> bytes:
        """Lê os bytes ``[start, end)`` do objeto."""
        ...

    def head_object(self, bucket: str, key: str) -> ObjectInfo:
        """Retorna os metadados do objeto."""
        ...

    def delete_object(self, bucket: str, key: str) -> None:
        """Remove o objeto; a ausência pode ou não gerar erro, conforme o serviço."""
        ...

    def list_objects(
        self, bucket: str, prefix: str, page_token: Optional[str] = None, max_keys: int = 1000
    ) -> ListPage:
        """Lista (recursivamente) uma página de chaves sob o prefixo."""
        ...

    def copy_object(self, bucket: str, dest_key: str, src_bucket: str, src_key: str) -> None:
        """Copia do lado do servidor ``src_bucket/src_key`` para ``bucket/dest_key``."""
        ...

    def initiate_multipart(self, bucket: str, key: str) -> str:
        """Inicia um upload multipart e retorna o upload id."""
        ...

    def upload_part(self, bucket: str, key: str, upload_id: str, index: int, data: bytes) -> str:
        """Envia uma parte e retorna seu entity-tag."""
        ...

    def complete_multipart(
        self, bucket: str, key: str, upload_id: str, parts: Sequence[UploadedPart]
    ) -> None:
        """Conclui o upload com as partes em ordem crescente de índice."""
        ...

    def abort_multipart(self, bucket: str, key: str, upload_id: str) -> None:
        """Descarta um upload multipart em andamento."""
        ...
