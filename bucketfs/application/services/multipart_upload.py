from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from bucketfs.application.ports.object_store_port import ObjectStorePort, UploadedPart
from bucketfs.config import MIN_PART_SIZE
from bucketfs.errors import UploadInitError, UploadStateError

logger = logging.getLogger(__name__)


class UploadState(Enum):
    ACCUMULATING = "accumulating"
    FINALIZED = "finalized"
    ABORTED = "aborted"


class MultipartUpload:
    """Destino de escrita que persiste um fluxo de bytes como upload multipart.

    Os bytes recebidos via ``append`` são acumulados em um buffer; a cada
    ``part_size`` bytes uma parte é enviada com o próximo índice (1, 2, 3...).
    ``finish`` envia o restante como parte final (pode ser menor que 5 MiB) e
    conclui o upload com as partes em ordem crescente de índice.

    Uma instância pertence a um único escritor; não é thread-safe.

    Exemplo
    >>> with MultipartUpload(store, "bucket", "big.bin") as sink:  # doctest: +SKIP
    ...     for chunk in chunks:
    ...         sink.append(chunk)
    """

    def __init__(
        self,
        store: ObjectStorePort,
        bucket: str,
        key: str,
        part_size: int = MIN_PART_SIZE,
    ) -> None:
        if part_size < MIN_PART_SIZE:
            raise ValueError(f"part_size deve ser >= {MIN_PART_SIZE} bytes")
        self.store = store
        self.bucket = bucket
        self.key = key
        self.part_size = part_size
        self.state = UploadState.ACCUMULATING
        self.upload_id: Optional[str] = None
        self.next_index = 1
        self.parts: list[UploadedPart] = []
        self._buffer = bytearray()

    @property
    def pending(self) -> int:
        """Quantidade de bytes ainda não enviados."""
        return len(self._buffer)

    def append(self, data: bytes) -> int:
        """Acrescenta bytes ao upload, enviando partes sempre que o buffer enche."""
        self._ensure_accumulating()
        if not data:
            return 0
        if self.upload_id is None:
            self._initiate()
        self._buffer += data
        while len(self._buffer) >= self.part_size:
            self._flush()
        return len(data)

    def finish(self) -> None:
        """Envia o restante do buffer e conclui o upload."""
        self._ensure_accumulating()
        if self.upload_id is None:
            # nenhum byte recebido: multipart exige ao menos uma parte
            self.store.put_object(self.bucket, self.key, b"")
            self.state = UploadState.FINALIZED
            return
        try:
            if self._buffer:
                self._flush()
            ordered = sorted(self.parts, key=lambda part: part.index)
            self.store.complete_multipart(self.bucket, self.key, self.upload_id, ordered)
        except Exception:
            self.abort()
            raise
        self.state = UploadState.FINALIZED
        logger.info("Upload multipart concluído: %s (%d partes)", self.key, len(self.parts))

    def abort(self) -> None:
        """Descarta o upload; a sessão remota é abortada quando já foi iniciada."""
        if self.state is not UploadState.ACCUMULATING:
            return
        self.state = UploadState.ABORTED
        self._buffer.clear()
        if self.upload_id is None:
            return
        try:
            self.store.abort_multipart(self.bucket, self.key, self.upload_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Falha ao abortar upload %s de %s: %s", self.upload_id, self.key, exc)

    def __enter__(self) -> "MultipartUpload":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        if exc_type is None:
            self.finish()
        else:
            self.abort()

    def _initiate(self) -> None:
        try:
            self.upload_id = self.store.initiate_multipart(self.bucket, self.key)
        except Exception as exc:
            self.state = UploadState.ABORTED
            raise UploadInitError(f"não foi possível iniciar upload de {self.key}") from exc
        logger.debug("Upload multipart iniciado: %s (%s)", self.key, self.upload_id)

    def _flush(self) -> None:
        if self.upload_id is None:
            raise UploadStateError(f"upload de {self.key} não foi iniciado")
        size = min(len(self._buffer), self.part_size)
        payload = bytes(self._buffer[:size])
        index = self.next_index
        try:
            etag = self.store.upload_part(self.bucket, self.key, self.upload_id, index, payload)
        except Exception:
            self.abort()
            raise
        self.parts.append(UploadedPart(index=index, etag=etag))
        self.next_index += 1
        del self._buffer[:size]
        logger.debug("Parte %d enviada (%d bytes) para %s", index, size, self.key)

    def _ensure_accumulating(self) -> None:
        if self.state is not UploadState.ACCUMULATING:
            raise UploadStateError(f"upload de {self.key} já está {self.state.value}")
