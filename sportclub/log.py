"""
Logging setup - Configurazione log (loguru)
"""
import sys
from pathlib import Path
from loguru import logger

from sportclub.config import app_config


def setup_logging(level: str = None, log_dir: str = None):
    """Sink su stderr e file con rotazione giornaliera"""
    level = level or app_config.log_level
    log_dir = log_dir or app_config.log_dir

    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=level
    )

    Path(log_dir).mkdir(parents=True, exist_ok=True)
    logger.add(
        str(Path(log_dir) / "sportclub_{time:YYYY-MM-DD}.log"),
        rotation="1 day",
        retention="30 days",
        level="DEBUG"
    )
