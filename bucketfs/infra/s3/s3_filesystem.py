from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional

from bucketfs.application.ports.filesystem_port import FilesystemPort
from bucketfs.application.ports.object_store_port import ObjectStorePort
from bucketfs.application.services.chunked_download import ChunkedDownload
from bucketfs.application.services.listing_aggregator import aggregate
from bucketfs.application.services.multipart_upload import MultipartUpload
from bucketfs.application.services.recursive_delete import RecursiveDeleter, iter_objects
from bucketfs.application.stat import Stat
from bucketfs.config import FilesystemConfig, StoreConfig, TransferConfig, load_config
from bucketfs.errors import ObjectNotFound, UnsupportedOperation
from bucketfs.infra.paths import join_dir_prefix, join_prefix
from bucketfs.infra.s3.minio_store import MinioObjectStore
from bucketfs.infra.s3.miniosdk import MinioFactory

logger = logging.getLogger(__name__)


@dataclass
class S3Filesystem(FilesystemPort):
    """Sistema de arquivos hierárquico sobre um bucket S3/MinIO.

    Caminhos lógicos são resolvidos contra ``config.prefix``. Diretórios são
    emulados: existem enquanto houver chaves sob o prefixo ou um marcador vazio
    terminado em '/'.

    Exemplo
    >>> fs = S3Filesystem.configure(StoreConfig("127.0.0.1:9000", "key", "secret"), bucket="default")
    >>> fs.write("test.txt", b"Hello World")  # doctest: +SKIP
    >>> fs.read("test.txt")  # doctest: +SKIP
    b'Hello World'
    """

    config: FilesystemConfig
    store: ObjectStorePort

    @classmethod
    def configure(
        cls,
        store: StoreConfig,
        bucket: str,
        prefix: str = "/",
        transfer: Optional[TransferConfig] = None,
        client: Optional[ObjectStorePort] = None,
    ) -> "S3Filesystem":
        """Monta o sistema de arquivos; sem ``client`` um cliente MinIO é criado."""
        config = FilesystemConfig(
            store=store, bucket=bucket, prefix=prefix, transfer=transfer or TransferConfig()
        )
        if client is None:
            minio = MinioFactory(store, read_timeout=config.transfer.fetch_timeout).build()
            client = MinioObjectStore(minio)
        return cls(config=config, store=client)

    @classmethod
    def from_env(cls) -> "S3Filesystem":
        """Monta o sistema de arquivos a partir das variáveis de ambiente/.env."""
        cfg = load_config()
        return cls.configure(cfg.store, cfg.bucket, cfg.prefix, cfg.transfer)

    @property
    def bucket(self) -> str:
        return self.config.bucket

    def _key(self, path: str) -> str:
        return join_prefix(self.config.prefix, path)

    def _deleter(self) -> RecursiveDeleter:
        transfer = self.config.transfer
        return RecursiveDeleter(
            self.store,
            self.bucket,
            concurrency=transfer.delete_concurrency,
            page_size=transfer.list_page_size,
        )

    def write(
        self, path: str, data: bytes, content_type: str = "application/octet-stream"
    ) -> None:
        """Grava o conteúdo inteiro em uma única requisição."""
        self.store.put_object(self.bucket, self._key(path), data, content_type=content_type)

    def write_stream(self, path: str) -> MultipartUpload:
        """Abre um destino de escrita em fluxo (upload multipart)."""
        return MultipartUpload(
            self.store, self.bucket, self._key(path), part_size=self.config.transfer.part_size
        )

    def read(self, path: str) -> bytes:
        """Lê o objeto inteiro; lança ObjectNotFound se não existir."""
        return self.store.get_object(self.bucket, self._key(path))

    def read_stream(
        self,
        path: str,
        chunk_size: Optional[int] = None,
        max_concurrency: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> Iterator[bytes]:
        """Lê o objeto em blocos ordenados, buscados com concorrência limitada."""
        transfer = self.config.transfer
        download = ChunkedDownload(
            self.store,
            self.bucket,
            self._key(path),
            chunk_size=chunk_size or transfer.chunk_size,
            max_concurrency=max_concurrency or transfer.max_concurrency,
            timeout=timeout or transfer.fetch_timeout,
        )
        return download.open()

    def delete(self, path: str) -> None:
        """Remove o objeto; remover um objeto inexistente é sucesso."""
        try:
            self.store.delete_object(self.bucket, self._key(path))
        except ObjectNotFound:
            logger.debug("Remoção de %s ignorada: objeto inexistente", path)

    def move(self, source: str, destination: str) -> None:
        """Move um objeto realizando cópia e, na sequência, removendo a origem.

        Não é atômico: se a remoção falhar, o destino permanece e o erro é propagado.
        """
        self.copy(source, destination)
        self.delete(source)

    def copy(self, source: str, destination: str) -> None:
        """Copia um objeto dentro do mesmo bucket."""
        self.store.copy_object(self.bucket, self._key(destination), self.bucket, self._key(source))

    def copy_between(self, source: str, destination_fs: FilesystemPort, destination: str) -> None:
        """Copia para outro sistema de arquivos do mesmo armazenamento (cópia no servidor).

        Armazenamentos diferentes (endpoint ou credenciais) não são suportados:
        nenhuma transferência de bytes é feita por este adaptador.
        """
        if not isinstance(destination_fs, S3Filesystem) or (
            destination_fs.config.store != self.config.store
        ):
            raise UnsupportedOperation(
                "cópia entre sistemas de arquivos exige o mesmo armazenamento S3"
            )
        self.store.copy_object(
            destination_fs.bucket,
            destination_fs._key(destination),
            self.bucket,
            self._key(source),
        )

    def exists(self, path: str) -> bool:
        """Retorna True se o objeto existir no bucket."""
        try:
            self.store.head_object(self.bucket, self._key(path))
        except ObjectNotFound:
            return False
        return True

    def list_contents(self, path: str = "") -> list[Stat]:
        """Lista os filhos imediatos do diretório lógico (arquivos e diretórios sintetizados)."""
        base = join_dir_prefix(self.config.prefix, path)
        entries = iter_objects(self.store, self.bucket, base, self.config.transfer.list_page_size)
        return aggregate(entries, base)

    def create_directory(self, path: str) -> None:
        """Grava o marcador vazio do diretório ('<path>/')."""
        marker = join_dir_prefix(self.config.prefix, path)
        if marker:
            self.store.put_object(self.bucket, marker, b"")

    def delete_directory(self, path: str, recursive: bool = False) -> int:
        """Remove um diretório.

        Sem ``recursive``, só remove o marcador de um diretório vazio e lança
        DirectoryNotEmpty caso existam filhos. Com ``recursive``, remove tudo sob
        o prefixo e retorna o total de objetos removidos.
        """
        base = join_dir_prefix(self.config.prefix, path)
        deleter = self._deleter()
        if recursive:
            return deleter.delete_all(base)
        deleter.delete_empty(base, marker_key=base)
        return 0

    def clear(self) -> int:
        """Remove todos os objetos sob o prefixo raiz."""
        return self._deleter().delete_all(join_dir_prefix(self.config.prefix, ""))
