from __future__ import annotations

from typing import Iterator, Optional, Protocol, Sequence

from bucketfs.application.stat import Stat


class WriteSink(Protocol):
    """Destino de escrita em fluxo devolvido por ``write_stream``."""

    def append(self, data: bytes) -> int:
        ...

    def finish(self) -> None:
        ...

    def abort(self) -> None:
        ...


class FilesystemPort(Protocol):
    """Conjunto de operações de sistema de arquivos usado por um despachante genérico.

    Ausência nunca chega como erro de transporte: ``exists`` retorna False,
    ``delete`` é idempotente e leituras lançam ``ObjectNotFound``.
    """

    def write(self, path: str, data: bytes, content_type: str = ...) -> None:
        ...

    def write_stream(self, path: str) -> WriteSink:
        ...

    def read(self, path: str) -> bytes:
        ...

    def read_stream(
        self,
        path: str,
        chunk_size: Optional[int] = None,
        max_concurrency: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> Iterator[bytes]:
        ...

    def delete(self, path: str) -> None:
        ...

    def move(self, source: str, destination: str) -> None:
        ...

    def copy(self, source: str, destination: str) -> None:
        ...

    def exists(self, path: str) -> bool:
        ...

    def list_contents(self, path: str = "") -> Sequence[Stat]:
        ...

    def create_directory(self, path: str) -> None:
        ...

    def delete_directory(self, path: str, recursive: bool = False) -> int:
        ...

    def clear(self) -> int:
        ...
