"""异常定义."""

from pathlib import Path


class ProcQuotaError(Exception):
    """所有异常的基类."""


class ConfigError(ProcQuotaError):
    """配额配置文件读取失败."""

    def __init__(self, path: str | Path, message: str) -> None:
        self.path = Path(path)
        super().__init__(f"{message}: {self.path}")


class ConfigNotFoundError(ConfigError):
    """配额配置文件不存在."""


class ConfigMalformedError(ConfigError):
    """配额配置文件格式错误."""


class CounterError(ProcQuotaError):
    """计数文件读写失败."""

    def __init__(self, path: str | Path, message: str) -> None:
        self.path = Path(path)
        super().__init__(f"{message}: {self.path}")


class CounterMalformedError(CounterError):
    """计数文件格式错误."""


class CounterWriteError(CounterError):
    """计数文件写入失败."""


class EnumerationError(ProcQuotaError):
    """获取进程列表失败."""


class EnumerationTimeoutError(EnumerationError):
    """获取进程列表超时."""


class EnumerationUnavailableError(EnumerationError):
    """系统进程列表不可用."""


class InspectionError(ProcQuotaError):
    """读取单个进程信息失败,调用方应跳过该进程."""

    def __init__(self, pid: int, message: str = "无法读取进程信息") -> None:
        self.pid = pid
        super().__init__(f"{message}: pid={pid}")


class TerminationError(ProcQuotaError):
    """结束进程失败."""

    def __init__(self, pid: int, message: str = "结束进程失败") -> None:
        self.pid = pid
        super().__init__(f"{message}: pid={pid}")
