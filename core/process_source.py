"""进程信息来源.

QuotaEngine 只依赖 ProcessSource 协议,真实环境下使用基于 psutil 的实现,
测试中可以替换为固定的进程列表.
"""

import threading
from collections.abc import Iterable, Iterator
from typing import Any, Protocol

import psutil

from config.settings import get_settings
from core.exceptions import (
    EnumerationTimeoutError,
    EnumerationUnavailableError,
    InspectionError,
    TerminationError,
)
from core.models import ProcessObservation
from utils.logger import get_logger

logger = get_logger(__name__)

_INSPECT_ATTRS = ["username", "exe", "name", "cmdline"]


class ProcessSource(Protocol):
    """进程来源协议."""

    def list_pids(self) -> list[int]:
        """列出当前所有进程ID.

        Raises:
            EnumerationError: 无法获取进程列表
        """
        ...

    def observe(self, pid: int) -> ProcessObservation:
        """读取单个进程的信息,读取失败的字段为 None.

        Raises:
            InspectionError: 进程已退出或完全无法访问
        """
        ...

    def terminate(self, pid: int) -> None:
        """结束进程.

        Raises:
            TerminationError: 结束失败
        """
        ...


def collect_observations(
    source: ProcessSource,
    pids: Iterable[int],
) -> Iterator[ProcessObservation]:
    """按顺序读取进程信息,跳过无法读取的进程."""
    for pid in pids:
        try:
            yield source.observe(pid)
        except InspectionError as exc:
            logger.debug("跳过进程: %s", exc)


class PsutilProcessSource:
    """基于psutil的进程来源."""

    def __init__(
        self,
        enumeration_timeout: float | None = None,
        kill_wait_timeout: float | None = None,
    ) -> None:
        settings = get_settings()
        self.enumeration_timeout = (
            settings.enumeration_timeout if enumeration_timeout is None else enumeration_timeout
        )
        self.kill_wait_timeout = (
            settings.kill_wait_timeout if kill_wait_timeout is None else kill_wait_timeout
        )
        # observe 时保留的进程句柄,terminate 时据此校验 pid 未被复用
        self._handles: dict[int, psutil.Process] = {}

    def list_pids(self) -> list[int]:
        """列出当前所有进程ID,超过 enumeration_timeout 秒则失败."""
        result: dict[str, Any] = {}

        def enumerate_pids() -> None:
            try:
                result["pids"] = psutil.pids()
            except Exception as exc:  # noqa: BLE001
                result["error"] = exc

        # 守护线程: 超时后不阻塞解释器退出
        worker = threading.Thread(target=enumerate_pids, name="pid-enum", daemon=True)
        worker.start()
        worker.join(self.enumeration_timeout)

        if worker.is_alive():
            raise EnumerationTimeoutError(f"获取进程列表超时({self.enumeration_timeout}秒)")

        error = result.get("error")
        if isinstance(error, (psutil.Error, OSError)):
            raise EnumerationUnavailableError(f"获取进程列表失败: {error}") from error
        if error is not None:
            raise error

        pids: list[int] = result["pids"]
        logger.debug("获取进程列表: count=%d", len(pids))
        return pids

    def observe(self, pid: int) -> ProcessObservation:
        """读取进程的用户、可执行文件路径、名称和命令行.

        无权限读取的字段为 None,进程已退出时抛出 InspectionError.
        """
        try:
            proc = psutil.Process(pid)
            info = proc.as_dict(attrs=_INSPECT_ATTRS, ad_value=None)
        except psutil.NoSuchProcess as exc:
            raise InspectionError(pid, "进程已退出") from exc
        except psutil.Error as exc:
            raise InspectionError(pid) from exc

        cmdline = info["cmdline"]
        obs = ProcessObservation(
            pid=pid,
            username=info["username"],
            exe=info["exe"],
            name=info["name"],
            cmdline=" ".join(cmdline) if cmdline is not None else None,
        )
        # 字段不全的进程不会参与判定,无需保留句柄
        if obs.is_complete():
            self._handles[pid] = proc
        return obs

    def terminate(self, pid: int) -> None:
        """发送SIGKILL结束进程."""
        try:
            proc = self._handles.get(pid) or psutil.Process(pid)
            proc.kill()
            if self.kill_wait_timeout > 0:
                proc.wait(timeout=self.kill_wait_timeout)
        except psutil.TimeoutExpired:
            logger.warning("进程 %d 在 %.1f 秒内未退出", pid, self.kill_wait_timeout)
        except psutil.NoSuchProcess as exc:
            raise TerminationError(pid, "进程已退出") from exc
        except psutil.AccessDenied as exc:
            raise TerminationError(pid, "没有权限结束进程") from exc
        except (psutil.Error, OSError) as exc:
            raise TerminationError(pid) from exc
        finally:
            self._handles.pop(pid, None)
