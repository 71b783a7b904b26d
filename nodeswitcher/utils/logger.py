"""
日志模块。

提供应用程序日志的配置和管理功能。
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

_logger: Optional[logging.Logger] = None

APP_HOME_ENV = "NODESWITCHER_HOME"


def get_app_dir() -> Path:
    """
    获取应用程序数据目录路径。

    优先使用 NODESWITCHER_HOME 环境变量，打包运行时使用可执行文件所在目录，
    否则使用用户主目录下的 .nodeswitcher。

    返回:
        应用程序数据目录的 Path 对象
    """
    env_home = os.environ.get(APP_HOME_ENV)
    if env_home:
        return Path(env_home)
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    return Path.home() / ".nodeswitcher"


LOG_FILE_NAME = "nodeswitcher.log"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(module)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5


def setup_logger(
    level: int = logging.INFO,
    log_to_file: bool = True,
    log_to_console: bool = True,
    log_dir: Optional[Path] = None,
    max_bytes: int = MAX_BYTES,
    backup_count: int = BACKUP_COUNT,
    console_level: int = logging.WARNING,
) -> logging.Logger:
    """
    配置并初始化日志记录器。

    重复调用时会按新参数重新配置处理器。

    参数:
        level: 日志级别，默认为 INFO
        log_to_file: 是否输出到文件，默认为 True
        log_to_console: 是否输出到控制台，默认为 True
        log_dir: 日志文件目录，默认为应用程序数据目录下的 logs
        max_bytes: 单个日志文件最大字节数，默认为 5MB
        backup_count: 保留的备份文件数量，默认为 5
        console_level: 控制台输出级别，默认为 WARNING，避免干扰命令行输出

    返回:
        配置好的 Logger 实例
    """
    global _logger

    logger = logging.getLogger("NodeSwitcher")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    if log_to_file:
        target_dir = log_dir or (get_app_dir() / "logs")
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                target_dir / LOG_FILE_NAME,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            sys.stderr.write(f"无法创建日志文件 {target_dir}: {e}\n")

    if log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level if level <= logging.DEBUG else console_level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """
    获取日志记录器实例。

    如果尚未初始化，则使用默认配置初始化。

    返回:
        Logger 实例
    """
    if _logger is None:
        return setup_logger()
    return _logger


def set_log_level(level: int) -> None:
    """
    设置日志级别。

    参数:
        level: 日志级别（如 logging.DEBUG、logging.INFO 等）
    """
    logger = get_logger()
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
