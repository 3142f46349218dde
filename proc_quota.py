#!/usr/bin/env python3
"""
进程配额 - 按用户限制指定程序每天的启动次数

功能:
1. 扫描当前所有进程,找出配置中受限用户运行的受限程序
2. 每个用户每次扫描最多计数一次,计数按天重置
3. 当天计数超过上限时结束对应进程
4. 扫描结束后保存计数

使用方法:
    sudo python proc_quota.py --cfg /etc/proc_quota/config.json --counts /var/lib/proc_quota/counts.json

通常由 cron 或 systemd timer 定期调用,每次调用只扫描一次.
"""

import argparse
import sys
from collections.abc import Sequence

from config.settings import get_settings
from core.config_store import load_config
from core.counter_store import load_counters, save_counters
from core.exceptions import ConfigError, CounterError, EnumerationError
from core.process_source import ProcessSource, PsutilProcessSource
from core.quota_engine import day_index, run_scan
from utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """解析命令行参数."""
    parser = argparse.ArgumentParser(
        prog="proc-quota",
        description="按用户限制指定程序每天的启动次数",
    )
    parser.add_argument("--cfg", required=True, help="配额配置文件(JSON)")
    parser.add_argument("--counts", required=True, help="使用计数文件(JSON),不存在时自动创建")
    parser.add_argument("--log-level", default=None, help="日志级别,默认读取 PROC_QUOTA_LOG_LEVEL")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None, source: ProcessSource | None = None) -> int:
    """执行一次扫描.

    Args:
        argv: 命令行参数,默认为 sys.argv[1:]
        source: 进程来源,默认使用psutil

    Returns:
        退出码
    """
    args = parse_args(argv)
    setup_logging(args.log_level)

    if source is None:
        settings = get_settings()
        source = PsutilProcessSource(
            enumeration_timeout=settings.enumeration_timeout,
            kill_wait_timeout=settings.kill_wait_timeout,
        )

    # 读取失败时直接退出,不改动计数文件
    try:
        pids = source.list_pids()
    except EnumerationError as exc:
        logger.error("获取进程列表失败: %s", exc)
        return 1

    try:
        config = load_config(args.cfg)
    except ConfigError as exc:
        logger.error("无法读取配置文件: %s", exc)
        return 1

    try:
        ledger = load_counters(args.counts)
    except CounterError as exc:
        logger.error("无法读取计数文件: %s", exc)
        return 1

    today = day_index()
    result = run_scan(config, source, pids, ledger, today)

    for notice in result.notices:
        print(notice.format())

    try:
        save_counters(args.counts, result.ledger)
    except CounterError as exc:
        # 进程已经结束,这里只会丢失本次计数
        logger.error("保存计数文件失败: %s", exc)
        return 1

    logger.info(
        "扫描完成: day=%d, processes=%d, matched=%d, killed=%d",
        today,
        len(pids),
        sum(1 for notice in result.notices if notice.kind == "matched"),
        len(result.terminations),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
