from __future__ import annotations

import logging
import os

_NOISY_LOGGERS = ("urllib3", "minio")


def setup_logging(level: str | None = None, quiet_transport: bool = True) -> None:
    """Configura o logging do bucketfs e, opcionalmente, silencia o transporte HTTP.

    O nível vem do argumento ou de LOG_LEVEL (padrão INFO). Com ``quiet_transport``,
    urllib3 e minio só registram avisos, evitando uma linha por requisição de faixa.

    Exemplo
    >>> setup_logging('DEBUG')
    >>> logging.getLogger('bucketfs').getEffectiveLevel() == logging.DEBUG
    True
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    logging.getLogger("bucketfs").setLevel(numeric_level)
    if quiet_transport:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))
