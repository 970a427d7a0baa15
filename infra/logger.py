import logging
from typing import Optional


_logger: Optional[logging.Logger] = None


def get_logger(name: str = "tesoreria", nivel: str | int | None = None) -> logging.Logger:
    """Logger único de la aplicación; los módulos piden hijos con ``logger.getChild``."""
    global _logger
    if _logger is not None:
        if nivel is not None:
            _logger.setLevel(nivel)
        return _logger

    logger = logging.getLogger(name)
    logger.setLevel(nivel if nivel is not None else logging.INFO)

    if not logger.handlers:
        ch = logging.StreamHandler()
        fmt = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
        ch.setFormatter(fmt)
        logger.addHandler(ch)

    _logger = logger
    return logger
