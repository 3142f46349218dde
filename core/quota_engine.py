"""配额判定.

每次扫描对每个受限用户最多计数一次: 同一用户同时运行多个匹配进程时,
只有第一个匹配的进程会累加计数并参与是否结束的判定,其余进程只输出匹配提示.
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import NamedTuple

from core.exceptions import TerminationError
from core.models import (
    QUOTA_EXCEEDED,
    Configuration,
    Notice,
    ProcessObservation,
    UsageCounter,
    UsageLedger,
)
from core.process_source import ProcessSource, collect_observations
from utils.logger import get_logger

logger = get_logger(__name__)

SECONDS_PER_DAY = 86400
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


class ScanResult(NamedTuple):
    """一次扫描的结果."""

    terminations: list[int]  # 需要结束的进程ID,按判定顺序
    ledger: UsageLedger  # 更新后的计数
    notices: list[Notice]


def day_index(now: datetime | None = None) -> int:
    """计算自1970-01-01(UTC)起经过的整天数,向零取整.

    Args:
        now: 当前时间,默认为系统时间;不带时区时按UTC处理

    Returns:
        天序号
    """
    if now is None:
        now = datetime.now(UTC)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return int((now - _EPOCH).total_seconds() / SECONDS_PER_DAY)


def advance_counter(counter: UsageCounter, today: int) -> UsageCounter:
    """记录一次使用: 跨天则重置为1,否则加1."""
    if today > counter.day:
        return UsageCounter(day=today, count=1)
    return counter._replace(count=counter.count + 1)


def evaluate(
    config: Configuration,
    observations: Iterable[ProcessObservation],
    ledger: UsageLedger,
    today: int,
) -> ScanResult:
    """对一次扫描到的进程做配额判定.

    不修改传入的 ledger,更新后的计数在结果中返回.

    Args:
        config: 用户配额配置
        observations: 扫描到的进程,按枚举顺序
        ledger: 扫描开始时的使用计数
        today: 本次扫描的天序号

    Returns:
        需要结束的进程、更新后的计数和提示列表
    """
    updated: UsageLedger = dict(ledger)
    flagged: set[str] = set()
    terminations: list[int] = []
    notices: list[Notice] = []

    for obs in observations:
        if not obs.is_complete():
            continue

        quota = config.get(obs.username)
        if quota is None:
            continue
        if obs.exe not in quota.allowed_executables:
            continue

        notices.append(
            Notice("matched", obs.pid, obs.username, obs.exe, obs.name, obs.cmdline),
        )

        if obs.username in flagged:
            continue
        flagged.add(obs.username)

        counter = updated.get(obs.username, UsageCounter(day=today, count=0))
        counter = advance_counter(counter, today)
        updated[obs.username] = counter

        if counter.count > quota.limit:
            logger.info(
                "用户 %s 超出配额: count=%d, limit=%d, pid=%d, exe=%s",
                obs.username,
                counter.count,
                quota.limit,
                obs.pid,
                obs.exe,
            )
            terminations.append(obs.pid)
            notices.append(
                Notice(
                    "killed",
                    obs.pid,
                    obs.username,
                    obs.exe,
                    obs.name,
                    obs.cmdline,
                    reason=QUOTA_EXCEEDED,
                ),
            )
        else:
            logger.debug(
                "用户 %s 计数: count=%d, limit=%d",
                obs.username,
                counter.count,
                quota.limit,
            )

    return ScanResult(terminations=terminations, ledger=updated, notices=notices)


def run_scan(
    config: Configuration,
    source: ProcessSource,
    pids: Iterable[int],
    ledger: UsageLedger,
    today: int,
) -> ScanResult:
    """读取进程信息、判定配额并结束超额进程.

    结束进程失败只记录日志,不回滚计数也不中断扫描.
    """
    result = evaluate(config, collect_observations(source, pids), ledger, today)

    for pid in result.terminations:
        try:
            source.terminate(pid)
        except TerminationError as exc:
            logger.error("结束超额进程失败: %s", exc)

    return result
