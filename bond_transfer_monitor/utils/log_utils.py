import logging
from logging.handlers import RotatingFileHandler
import os
import sys
from time import strftime, localtime

from bond_transfer_monitor.config import base_config

PACKAGE_NAME = "bond_transfer_monitor"

FMT = logging.Formatter("%(asctime)s %(levelname)s %(filename)s:%(lineno)s %(message)s")


def extended_seconds_to_hms(seconds) -> str:
    days, remainder = divmod(seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, seconds = divmod(remainder, 60)

    if days > 0:
        return f"{int(days):d}:{int(hours):02d}:{int(minutes):02d}:{int(seconds):02d}"
    else:
        return f"{int(hours):02d}:{int(minutes):02d}:{int(seconds):02d}"


def epoch_to_localhost(epoch_time: float) -> str:
    return strftime('%Y-%m-%d %H:%M:%S', localtime(epoch_time))


def _resolve_level() -> int:
    level_name = str(base_config.LoggingConfig.get('level', 'INFO')).upper()
    return getattr(logging, level_name, logging.INFO)


def _file_handler(log_file: str) -> RotatingFileHandler:
    log_dir = os.path.dirname(os.path.abspath(log_file))
    os.makedirs(log_dir, exist_ok=True)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setFormatter(FMT)
    return file_handler


def get_logger(logger_name: str, log_file: str = None) -> logging.Logger:
    logger = logging.getLogger(logger_name)

    # 检查logger是否已经有处理器，如果有，直接返回
    if logger.handlers:
        return logger

    log_file = log_file or base_config.LoggingConfig.get('file')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(FMT)
    # File handler (if log_file is provided)
    if log_file:
        logger.addHandler(_file_handler(log_file))

    logger.addHandler(console_handler)
    logger.setLevel(_resolve_level())

    # 防止日志传播到根日志器
    logger.propagate = False

    return logger


def configure_logging() -> None:
    """
    按当前 logging 配置段刷新已创建的日志器

    日志器在模块导入时按默认配置创建，重新加载配置文件后调用本函数，
    使新的 level 和 file 生效
    """
    level = _resolve_level()
    log_file = base_config.LoggingConfig.get('file')
    shared_handler = _file_handler(log_file) if log_file else None

    for name, logger in list(logging.Logger.manager.loggerDict.items()):
        if not isinstance(logger, logging.Logger) or not name.startswith(PACKAGE_NAME):
            continue
        if not logger.handlers:
            continue

        for handler in [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]:
            logger.removeHandler(handler)
            handler.close()
        if shared_handler is not None:
            logger.addHandler(shared_handler)
        logger.setLevel(level)
