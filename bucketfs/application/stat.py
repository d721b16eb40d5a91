from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union


@dataclass(frozen=True)
class FileStat:
    """Entrada de listagem para um objeto (arquivo)."""

    name: str
    size: int
    mtime: Optional[datetime]


@dataclass(frozen=True)
class DirStat:
    """Diretório sintetizado a partir de chaves com prefixo comum.

    ``size`` soma os filhos observados e ``mtime`` é o maior timestamp entre eles.
    """

    name: str
    size: int
    mtime: Optional[datetime]


Stat = Union[FileStat, DirStat]
