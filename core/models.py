"""数据模型."""

from typing import Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field

QUOTA_EXCEEDED = "quota exceeded"


class UserQuota(NamedTuple):
    """单个用户的配额."""

    limit: int  # 每天允许的最大匹配次数
    allowed_executables: frozenset[str]  # 受限可执行文件的绝对路径


class UsageCounter(NamedTuple):
    """单个用户的当日使用计数.

    count 只对 day 有意义,day 过期后计数从 1 重新开始.
    """

    day: int
    count: int


class ProcessObservation(NamedTuple):
    """一次扫描中观察到的进程.

    username/exe/name/cmdline 为 None 表示该字段读取失败.
    """

    pid: int
    username: str | None
    exe: str | None
    name: str | None
    cmdline: str | None

    def is_complete(self) -> bool:
        """所有字段是否都已读取."""
        return None not in (self.username, self.exe, self.name, self.cmdline)


class Notice(NamedTuple):
    """扫描过程中产生的提示."""

    kind: Literal["matched", "killed"]
    pid: int
    username: str
    exe: str
    name: str
    cmdline: str
    reason: str | None = None

    def format(self) -> str:
        """输出到标准输出的一行文本."""
        if self.kind == "killed":
            return f"{self.exe} killed, {self.reason}"
        return f"{self.exe} {self.name} {self.cmdline}"


Configuration = dict[str, UserQuota]
UsageLedger = dict[str, UsageCounter]


class UserQuotaEntry(BaseModel):
    """配置文件中单个用户的条目."""

    # 只接受JSON整数,"3"、true、2.0 都视为格式错误
    model_config = ConfigDict(extra="ignore", strict=True)

    limit: int = Field(default=0, ge=0, description="每天允许的最大匹配次数")
    procs: list[str] = Field(default_factory=list, description="受限可执行文件路径")

    def to_quota(self) -> UserQuota:
        """转换为运行时配额,路径去重."""
        return UserQuota(limit=self.limit, allowed_executables=frozenset(self.procs))


class UsageCounterEntry(BaseModel):
    """计数文件中单个用户的条目."""

    model_config = ConfigDict(extra="ignore", strict=True)

    day: int = Field(default=0, description="天序号(自1970-01-01起的天数)")
    count: int = Field(default=0, ge=0, description="当天已记录次数")

    @classmethod
    def from_counter(cls, counter: UsageCounter) -> "UsageCounterEntry":
        return cls(day=counter.day, count=counter.count)

    def to_counter(self) -> UsageCounter:
        return UsageCounter(day=self.day, count=self.count)
