"""日志管理模块."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any

from config.settings import get_settings
from pythonjsonlogger.json import JsonFormatter


class CustomJsonFormatter(JsonFormatter):
    """自定义JSON日志格式化器."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        """添加自定义字段到日志记录."""
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        if hasattr(record, "module"):
            log_record["module"] = record.module
        if hasattr(record, "funcName"):
            log_record["function"] = record.funcName


def setup_logging(level: str | None = None) -> None:
    """配置日志系统.

    Args:
        level: 日志级别,为空时使用配置中的 log_level
    """
    settings = get_settings()
    log_level = (level or settings.log_level).upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    # 控制台处理器 - 输出到stderr,stdout留给匹配/结束进程的提示行
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    # 文件处理器 - 使用JSON格式
    log_path = settings.get_log_path()
    if log_path is not None:
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        json_formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(logger)s %(module)s %(function)s %(message)s",
        )
        file_handler.setFormatter(json_formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger("psutil").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """获取指定名称的日志记录器.

    Args:
        name: 日志记录器名称,通常使用 __name__

    Returns:
        日志记录器实例
    """
    return logging.getLogger(name)
