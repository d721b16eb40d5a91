from __future__ import annotations

from dataclasses import dataclass

import urllib3
from minio import Minio

from bucketfs.config import StoreConfig


@dataclass(frozen=True)
class MinioFactory:
    """Fábrica para construir clientes MinIO a partir de StoreConfig.

    Exemplo
    >>> client = MinioFactory(StoreConfig("127.0.0.1:9000", "minio", "segredo")).build()
    >>> isinstance(client, Minio)
    True
    """

    store: StoreConfig
    connect_timeout: float = 5.0
    read_timeout: float = 60.0
    max_connections: int = 16

    def build(self) -> Minio:
        """Cria um cliente MinIO com timeouts e pool de conexões dimensionado.

        O pool precisa comportar as buscas de faixa e remoções concorrentes.
        """
        endpoint = self.store.endpoint.replace("http://", "").replace("https://", "")
        http = urllib3.PoolManager(
            timeout=urllib3.Timeout(connect=self.connect_timeout, read=self.read_timeout),
            maxsize=self.max_connections,
            retries=urllib3.Retry(total=3, backoff_factor=0.2, status_forcelist=[500, 502, 503, 504]),
        )
        return Minio(
            endpoint=endpoint,
            access_key=self.store.access_key,
            secret_key=self.store.secret_key,
            secure=self.store.secure,
            region=self.store.region,
            http_client=http,
        )
