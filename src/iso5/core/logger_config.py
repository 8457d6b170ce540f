# ============================================================
# src/iso5/core/logger_config.py — Configuración central del logger
# ------------------------------------------------------------
# init_logger() configura el logger global de Loguru a partir
# del entorno (.env) o de argumentos explícitos.
#
# El logger escribe en:
#   - Consola (colorizada, nivel configurable)
#   - Archivo de logs (rotación diaria en <log_dir>/)
# ============================================================

from __future__ import annotations

import os
from pathlib import Path
import sys

from dotenv import load_dotenv
from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def init_logger(level: str | None = None, log_dir: str | Path | None = None) -> Path | None:
    """
    Inicializa la configuración global del logger.
    Llamar una vez al arrancar (cli.main() lo hace).

    Devuelve la ruta del archivo de logs, o None si el log a archivo
    está desactivado (log_dir == "").
    """
    load_dotenv()
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    logger.remove()

    logger.add(
        sink=sys.stderr,
        level=log_level,
        colorize=True,
        format=LOG_FORMAT,
    )

    if log_dir == "":
        logger.info(f"Logger initialised (level {log_level}, console only)")
        return None

    directory = Path(log_dir) if log_dir is not None else Path("data/logs")
    directory.mkdir(parents=True, exist_ok=True)
    log_file_path = directory / "iso5.log"

    logger.add(
        sink=log_file_path,
        level=log_level,
        rotation="1 day",
        retention="7 days",
        enqueue=True,  # seguro entre hilos
        backtrace=True,
        diagnose=False,
        format=LOG_FORMAT,
    )

    logger.info(f"Logger initialised (level {log_level})")
    logger.debug(f"Logs written to: {log_file_path}")
    return log_file_path
