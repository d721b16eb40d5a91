from __future__ import annotations


class BucketFSError(Exception):
    """Erro base do adaptador de sistema de arquivos sobre S3."""


class ObjectNotFound(BucketFSError):
    """Objeto (ou prefixo) inexistente no bucket."""

    def __init__(self, key: str, message: str | None = None) -> None:
        super().__init__(message or f"objeto não encontrado: {key}")
        self.key = key


class DirectoryNotEmpty(BucketFSError):
    """Remoção não recursiva de um diretório que ainda possui filhos."""

    def __init__(self, path: str) -> None:
        super().__init__(f"diretório não está vazio: {path}")
        self.path = path


class UnsupportedOperation(BucketFSError):
    """Operação não suportada entre as configurações informadas."""


class UploadInitError(BucketFSError):
    """Falha ao iniciar o upload multipart; a escrita inteira é abortada."""


class UploadStateError(BucketFSError):
    """Uso de um upload multipart já finalizado ou abortado."""


class InvalidPath(BucketFSError):
    """Caminho lógico inválido (por exemplo, escapa da raiz com '..')."""


class ConfigError(BucketFSError):
    """Valor de configuração inválido."""
