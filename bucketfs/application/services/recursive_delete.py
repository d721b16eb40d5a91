from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Iterable, Iterator, Optional

from bucketfs.application.ports.object_store_port import ObjectInfo, ObjectStorePort
from bucketfs.errors import DirectoryNotEmpty, ObjectNotFound

logger = logging.getLogger(__name__)


def iter_objects(
    store: ObjectStorePort, bucket: str, prefix: str, page_size: int = 1000
) -> Iterator[ObjectInfo]:
    """Percorre todas as páginas da listagem sob o prefixo."""
    token: Optional[str] = None
    while True:
        page = store.list_objects(bucket, prefix, page_token=token, max_keys=page_size)
        yield from page.entries
        if not page.next_token:
            return
        token = page.next_token


class RecursiveDeleter:
    """Remove objetos sob um prefixo com concorrência limitada.

    A primeira falha observada sinaliza o cancelamento do lote: nenhuma nova
    remoção é iniciada e o erro é relançado ao chamador. Objetos já removidos
    continuam removidos.
    """

    def __init__(
        self,
        store: ObjectStorePort,
        bucket: str,
        concurrency: int = 8,
        page_size: int = 1000,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency deve ser >= 1")
        self.store = store
        self.bucket = bucket
        self.concurrency = concurrency
        self.page_size = page_size

    def has_children(self, prefix: str, ignore: Iterable[str] = ()) -> bool:
        """Retorna True se existir alguma chave sob o prefixo além das ignoradas."""
        skip = set(ignore)
        page = self.store.list_objects(self.bucket, prefix, max_keys=len(skip) + 1)
        return any(info.key not in skip for info in page.entries)

    def delete_empty(self, prefix: str, marker_key: str) -> None:
        """Remove o marcador de um diretório vazio; falha se houver filhos."""
        if self.has_children(prefix, ignore=(marker_key,)):
            raise DirectoryNotEmpty(prefix)
        if not marker_key:
            return
        try:
            self.store.delete_object(self.bucket, marker_key)
        except ObjectNotFound:
            pass

    def delete_all(self, prefix: str) -> int:
        """Remove todos os objetos sob o prefixo e retorna o total removido."""
        cancelled = threading.Event()
        first_error: Optional[BaseException] = None
        deleted = 0

        def collect(done: Iterable[Future[bool]]) -> None:
            nonlocal first_error, deleted
            for future in done:
                if future.cancelled():
                    continue
                error = future.exception()
                if error is not None:
                    if first_error is None:
                        first_error = error
                        cancelled.set()
                elif future.result():
                    deleted += 1

        with ThreadPoolExecutor(
            max_workers=self.concurrency, thread_name_prefix="bucketfs-delete"
        ) as executor:
            in_flight: set[Future[bool]] = set()
            for info in iter_objects(self.store, self.bucket, prefix, self.page_size):
                if cancelled.is_set():
                    break
                in_flight.add(executor.submit(self._delete_one, info.key, cancelled))
                if len(in_flight) >= self.concurrency:
                    done, in_flight = wait(in_flight, return_when=FIRST_COMPLETED)
                    collect(done)
            if cancelled.is_set():
                for future in in_flight:
                    future.cancel()
            done, _ = wait(in_flight)
            collect(done)

        if first_error is not None:
            logger.warning(
                "Remoção recursiva de %r interrompida após %d objetos: %s", prefix, deleted, first_error
            )
            raise first_error
        logger.info("Remoção recursiva de %r: %d objetos removidos", prefix, deleted)
        return deleted

    def _delete_one(self, key: str, cancelled: threading.Event) -> bool:
        if cancelled.is_set():
            return False
        try:
            self.store.delete_object(self.bucket, key)
        except ObjectNotFound:
            pass
        return True
