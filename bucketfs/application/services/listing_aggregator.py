from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from bucketfs.application.ports.object_store_port import ObjectInfo
from bucketfs.application.stat import DirStat, FileStat, Stat

SEPARATOR = "/"


def _latest(a: Optional[datetime], b: Optional[datetime]) -> Optional[datetime]:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


@dataclass
class _Entry:
    seq: int
    is_dir: bool
    name: str
    size: int
    mtime: Optional[datetime]

    def to_stat(self) -> Stat:
        if self.is_dir:
            return DirStat(name=self.name, size=self.size, mtime=self.mtime)
        return FileStat(name=self.name, size=self.size, mtime=self.mtime)


class ListingAggregator:
    """Converte uma listagem plana de chaves em filhos imediatos de um diretório.

    Chaves sem separador após ``base`` viram arquivos; as demais são agrupadas
    pelo primeiro segmento em diretórios sintetizados, cujo tamanho é a soma dos
    filhos e cujo mtime é o maior entre eles. A saída segue a ordem da primeira
    aparição de cada nome.

    Marcadores de diretório (chaves terminadas em '/', sem bytes) contam como
    membros do diretório de mesmo nome, de modo que o resultado não depende da
    ordem entre marcador e filhos. O marcador do próprio ``base`` é ignorado.

    Exemplo
    >>> agg = ListingAggregator("docs/")
    >>> agg.add(ObjectInfo("docs/a.txt", 3))
    >>> agg.add(ObjectInfo("docs/dir/c.txt", 5))
    >>> agg.results()
    [FileStat(name='a.txt', size=3, mtime=None), DirStat(name='dir', size=5, mtime=None)]
    """

    def __init__(self, base: str) -> None:
        self.base = base
        self._entries: dict[tuple[bool, str], _Entry] = {}
        self._seq = 0

    def add(self, info: ObjectInfo) -> None:
        if not info.key.startswith(self.base):
            return
        relative = info.key[len(self.base):].lstrip(SEPARATOR)
        if not relative:
            return
        name, sep, _rest = relative.partition(SEPARATOR)
        self._merge(is_dir=bool(sep), name=name, size=info.size, mtime=info.last_modified)

    def extend(self, infos: Iterable[ObjectInfo]) -> "ListingAggregator":
        for info in infos:
            self.add(info)
        return self

    def results(self) -> list[Stat]:
        return [entry.to_stat() for entry in sorted(self._entries.values(), key=lambda e: e.seq)]

    def _merge(self, is_dir: bool, name: str, size: int, mtime: Optional[datetime]) -> None:
        slot = (is_dir, name)
        entry = self._entries.get(slot)
        if entry is None:
            self._entries[slot] = _Entry(self._seq, is_dir, name, size, mtime)
            self._seq += 1
            return
        if is_dir:
            entry.size += size
            entry.mtime = _latest(entry.mtime, mtime)
        else:
            # a mesma chave listada de novo (páginas sobrepostas): última definição vence
            entry.size = size
            entry.mtime = mtime


def aggregate(infos: Iterable[ObjectInfo], base: str) -> list[Stat]:
    """Atalho para agregar uma listagem completa sob ``base``."""
    return ListingAggregator(base).extend(infos).results()
