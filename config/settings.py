"""运行参数管理."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """运行参数.

    配额配置文件和计数文件通过命令行传入,这里只放工具本身的运行参数.
    """

    model_config = SettingsConfigDict(
        env_prefix="PROC_QUOTA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # 进程扫描配置
    enumeration_timeout: float = Field(
        default=10.0,
        gt=0,
        description="枚举进程列表超时时间(秒)",
    )
    kill_wait_timeout: float = Field(
        default=0.0,
        ge=0,
        description="结束进程后等待其退出的时间(秒),0表示不等待",
    )

    # 日志配置
    log_level: str = Field(default="INFO", description="日志级别")
    log_file: str | None = Field(default=None, description="日志文件路径,为空则只输出到控制台")
    log_max_bytes: int = Field(default=10485760, description="日志文件最大大小(字节)")
    log_backup_count: int = Field(default=5, description="日志备份数量")

    def get_log_path(self) -> Path | None:
        """获取日志文件的绝对路径."""
        if not self.log_file:
            return None
        log_path = Path(self.log_file)
        if not log_path.is_absolute():
            log_path = Path.cwd() / log_path
        log_path.parent.mkdir(parents=True, exist_ok=True)
        return log_path


@lru_cache
def get_settings() -> Settings:
    """获取配置单例."""
    return Settings()
