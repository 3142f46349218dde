"""配额配置文件读取."""

from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from core.exceptions import ConfigError, ConfigMalformedError, ConfigNotFoundError
from core.models import Configuration, UserQuotaEntry
from utils.logger import get_logger

logger = get_logger(__name__)

# 文件内容为 JSON null 时视为空配置,单个用户为 null 时视为 limit=0 且没有受限程序
_CONFIG_ADAPTER = TypeAdapter(dict[str, UserQuotaEntry | None] | None)


def load_config(path: str | Path) -> Configuration:
    """读取配额配置.

    文件格式为 {用户名: {"limit": 整数, "procs": [可执行文件路径, ...]}}.
    每次调用都会重新读取文件,不做缓存.

    Args:
        path: 配置文件路径

    Returns:
        用户名到配额的映射

    Raises:
        ConfigNotFoundError: 文件不存在
        ConfigMalformedError: 文件内容无法解析
        ConfigError: 其他读取错误
    """
    path = Path(path)
    try:
        raw = path.read_bytes()
    except FileNotFoundError as exc:
        raise ConfigNotFoundError(path, "配置文件不存在") from exc
    except OSError as exc:
        raise ConfigError(path, f"读取配置文件失败({exc.strerror})") from exc

    try:
        entries = _CONFIG_ADAPTER.validate_json(raw)
    except ValidationError as exc:
        raise ConfigMalformedError(path, "配置文件格式错误") from exc

    config = {
        user: (entry if entry is not None else UserQuotaEntry()).to_quota()
        for user, entry in (entries or {}).items()
    }
    logger.debug("加载配额配置: path=%s, users=%d", path, len(config))
    return config
