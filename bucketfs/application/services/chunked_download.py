from __future__ import annotations

import logging
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass
from itertools import islice
from typing import Iterator, Sequence

from bucketfs.application.ports.object_store_port import ObjectStorePort

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 5 * 1024 * 1024


@dataclass(frozen=True)
class ByteRange:
    """Faixa de bytes ``[start, end)`` de um objeto."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


def plan_ranges(size: int, chunk_size: int) -> list[ByteRange]:
    """Divide ``[0, size)`` em faixas contíguas de até ``chunk_size`` bytes.

    Exemplo
    >>> [(r.start, r.end) for r in plan_ranges(10, 4)]
    [(0, 4), (4, 8), (8, 10)]
    >>> plan_ranges(0, 4)
    []
    """
    if chunk_size < 1:
        raise ValueError("chunk_size deve ser >= 1")
    return [ByteRange(start, min(start + chunk_size, size)) for start in range(0, size, chunk_size)]


class ChunkedDownload:
    """Leitura de um objeto em faixas buscadas concorrentemente, entregues em ordem.

    No máximo ``max_concurrency`` faixas ficam em andamento; a próxima faixa só é
    disparada quando a mais antiga é entregue ao consumidor. Encerrar a iteração
    antes do fim cancela as faixas ainda não iniciadas e aguarda as que estão em voo.
    """

    def __init__(
        self,
        store: ObjectStorePort,
        bucket: str,
        key: str,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_concurrency: int = 8,
        timeout: float = 60.0,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency deve ser >= 1")
        self.store = store
        self.bucket = bucket
        self.key = key
        self.chunk_size = chunk_size
        self.max_concurrency = max_concurrency
        self.timeout = timeout

    def open(self) -> Iterator[bytes]:
        """Consulta o tamanho do objeto e devolve o iterador de blocos.

        ``ObjectNotFound`` é lançado aqui, antes de qualquer busca de faixa.
        """
        info = self.store.head_object(self.bucket, self.key)
        plan = plan_ranges(info.size, self.chunk_size)
        logger.debug("Download de %s: %d bytes em %d faixas", self.key, info.size, len(plan))
        return self._iter_chunks(plan)

    def _fetch(self, byte_range: ByteRange) -> bytes:
        return self.store.get_object_range(self.bucket, self.key, byte_range.start, byte_range.end)

    def _iter_chunks(self, plan: Sequence[ByteRange]) -> Iterator[bytes]:
        if not plan:
            return
        executor = ThreadPoolExecutor(
            max_workers=min(self.max_concurrency, len(plan)),
            thread_name_prefix="bucketfs-range",
        )
        remaining = iter(plan)
        in_flight: deque[Future[bytes]] = deque(
            executor.submit(self._fetch, byte_range)
            for byte_range in islice(remaining, self.max_concurrency)
        )
        failed = False
        try:
            while in_flight:
                try:
                    chunk = in_flight.popleft().result(timeout=self.timeout)
                except FuturesTimeout as exc:
                    failed = True
                    raise TimeoutError(
                        f"busca de faixa de {self.key} excedeu {self.timeout}s"
                    ) from exc
                except Exception:
                    failed = True
                    raise
                following = next(remaining, None)
                if following is not None:
                    in_flight.append(executor.submit(self._fetch, following))
                yield chunk
        finally:
            for future in in_flight:
                future.cancel()
            # em falha não aguarda buscas travadas
            executor.shutdown(wait=not failed, cancel_futures=True)
