from __future__ import annotations

from bucketfs.errors import InvalidPath

SEPARATOR = "/"


def normalize(path: str) -> str:
    """Normaliza um caminho lógico: remove barras repetidas e segmentos '.'.

    Segmentos '..' são resolvidos, mas nunca acima da raiz.

    Exemplo
    >>> normalize('/a//b/./c/')
    'a/b/c'
    >>> normalize('a/b/../c')
    'a/c'
    """
    segments: list[str] = []
    for segment in path.split(SEPARATOR):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not segments:
                raise InvalidPath(f"caminho escapa da raiz: {path!r}")
            segments.pop()
            continue
        segments.append(segment)
    return SEPARATOR.join(segments)


def join_prefix(prefix: str, path: str) -> str:
    """Resolve o caminho lógico contra o prefixo raiz, gerando a chave absoluta.

    Exemplo
    >>> join_prefix('/', 'test.txt')
    'test.txt'
    >>> join_prefix('/data/', 'dir/file.txt')
    'data/dir/file.txt'
    """
    root = normalize(prefix)
    relative = normalize(path)
    if not root:
        return relative
    if not relative:
        return root
    return f"{root}{SEPARATOR}{relative}"


def join_dir_prefix(prefix: str, path: str) -> str:
    """Como join_prefix, mas termina com '/' para listar apenas o conteúdo do diretório.

    Exemplo
    >>> join_dir_prefix('/', '')
    ''
    >>> join_dir_prefix('/', 'dir')
    'dir/'
    """
    key = join_prefix(prefix, path)
    return f"{key}{SEPARATOR}" if key else key
