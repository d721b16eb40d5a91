from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from bucketfs.errors import ConfigError

MIB = 1024 * 1024
MIN_PART_SIZE = 5 * MIB


@dataclass(frozen=True)
class StoreConfig:
    """Parâmetros de acesso ao serviço S3/MinIO.

    Duas instâncias iguais apontam para o mesmo armazenamento (mesmo endpoint e credenciais).

    Exemplo
    >>> StoreConfig(endpoint="127.0.0.1:9000") == StoreConfig(endpoint="127.0.0.1:9000")
    True
    """

    endpoint: str
    access_key: str = ""
    secret_key: str = ""
    secure: bool = False
    region: str | None = None


@dataclass(frozen=True)
class TransferConfig:
    """Limites de concorrência e tamanhos usados em transferências."""

    max_concurrency: int = 8
    fetch_timeout: float = 60.0
    chunk_size: int = 5 * MIB
    part_size: int = MIN_PART_SIZE
    delete_concurrency: int = 8
    list_page_size: int = 1000

    def __post_init__(self) -> None:
        if self.max_concurrency < 1 or self.delete_concurrency < 1:
            raise ConfigError("concorrência deve ser >= 1")
        if self.chunk_size < 1:
            raise ConfigError("chunk_size deve ser >= 1")
        if self.part_size < MIN_PART_SIZE:
            raise ConfigError(f"part_size deve ser >= {MIN_PART_SIZE} bytes")
        if self.fetch_timeout <= 0:
            raise ConfigError("fetch_timeout deve ser positivo")
        if self.list_page_size < 1:
            raise ConfigError("list_page_size deve ser >= 1")


@dataclass(frozen=True)
class FilesystemConfig:
    """Configuração imutável de um sistema de arquivos sobre um bucket.

    Exemplo
    >>> cfg = FilesystemConfig(store=StoreConfig("127.0.0.1:9000"), bucket="default")
    >>> cfg.prefix
    '/'
    """

    store: StoreConfig
    bucket: str
    prefix: str = "/"
    transfer: TransferConfig = field(default_factory=TransferConfig)


def _getenv_bool(name: str, default: bool) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "t", "yes", "y"}


def _getenv_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val.strip() == "":
        return default
    try:
        return int(val)
    except ValueError as exc:
        raise ConfigError(f"{name} deve ser inteiro, recebido {val!r}") from exc


def _getenv_float(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None or val.strip() == "":
        return default
    try:
        return float(val)
    except ValueError as exc:
        raise ConfigError(f"{name} deve ser numérico, recebido {val!r}") from exc


def load_config(env_file: str | Path | None = None) -> FilesystemConfig:
    """Carrega a configuração (lendo .env se presente).

    Exemplo
    >>> cfg = load_config()
    >>> isinstance(cfg.store.secure, bool)
    True
    """
    _load_env_file(env_file)
    endpoint = os.getenv("S3_ENDPOINT", "http://127.0.0.1:9000")
    secure = _getenv_bool("S3_SECURE", endpoint.startswith("https://"))

    store = StoreConfig(
        endpoint=endpoint.replace("http://", "").replace("https://", ""),
        access_key=os.getenv("S3_ACCESS", "minio"),
        secret_key=os.getenv("S3_SECRET", ""),
        secure=secure,
        region=os.getenv("S3_REGION") or None,
    )
    transfer = TransferConfig(
        max_concurrency=_getenv_int("BUCKETFS_MAX_CONCURRENCY", 8),
        fetch_timeout=_getenv_float("BUCKETFS_FETCH_TIMEOUT", 60.0),
        chunk_size=_getenv_int("BUCKETFS_CHUNK_SIZE", 5 * MIB),
        part_size=_getenv_int("BUCKETFS_PART_SIZE", MIN_PART_SIZE),
        delete_concurrency=_getenv_int("BUCKETFS_DELETE_CONCURRENCY", 8),
    )
    return FilesystemConfig(
        store=store,
        bucket=os.getenv("S3_BUCKET", "default"),
        prefix=os.getenv("S3_PREFIX", "/"),
        transfer=transfer,
    )


def _load_env_file(filename: str | Path | None = None) -> None:
    """Carrega variáveis de um arquivo .env simples (KEY=VALUE).

    Variáveis já definidas no ambiente têm precedência.

    Exemplo
    >>> _load_env_file()  # silencioso quando não existe
    """
    env_path = Path(filename) if filename else Path.cwd() / ".env"
    if not env_path.exists():
        return
    for line in env_path.read_text(encoding="utf-8").splitlines():
        # Remove potencial BOM no início do arquivo
        line = line.lstrip("\ufeff").strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        k, v = line.split("=", 1)
        k = k.strip()
        if k:
            os.environ.setdefault(k, v.strip())
