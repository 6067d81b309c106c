"""
Модуль для конфигурации логирования.

Определяет единый формат и настройки для всех логгеров в приложении.
"""

import logging
import sys


def setup_logging(level: int | str = logging.INFO) -> None:
    """
    Настраивает базовую конфигурацию логирования для вывода в stdout.

    Args:
        level: Уровень логирования (INFO, DEBUG и т.д.), числом или строкой.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    log_format = "%(asctime)s - [%(levelname)s] - %(name)s - (%(filename)s).%(funcName)s(%(lineno)d) - %(message)s"

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(logging.Formatter(log_format))

    logging.basicConfig(level=level, handlers=[stdout_handler], force=True)

    # Каждый запрос к API логируется httpx на уровне INFO вместе с URL
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("telegram.ext").setLevel(logging.WARNING)
