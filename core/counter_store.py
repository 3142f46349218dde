"""使用计数文件读写."""

import os
import stat
import tempfile
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from core.exceptions import CounterError, CounterMalformedError, CounterWriteError
from core.models import UsageCounterEntry, UsageLedger
from utils.logger import get_logger

logger = get_logger(__name__)

# 单个用户为 null 时视为 day=0, count=0
_LEDGER_ADAPTER = TypeAdapter(dict[str, UsageCounterEntry | None] | None)
_DEFAULT_FILE_MODE = 0o644


def load_counters(path: str | Path) -> UsageLedger:
    """读取使用计数.

    首次运行时文件不存在,返回空映射.

    Args:
        path: 计数文件路径

    Returns:
        用户名到计数的映射

    Raises:
        CounterMalformedError: 文件存在但内容无法解析
        CounterError: 其他读取错误
    """
    path = Path(path)
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        logger.info("计数文件不存在,从空计数开始: %s", path)
        return {}
    except OSError as exc:
        raise CounterError(path, f"读取计数文件失败({exc.strerror})") from exc

    try:
        entries = _LEDGER_ADAPTER.validate_json(raw)
    except ValidationError as exc:
        raise CounterMalformedError(path, "计数文件格式错误") from exc

    return {
        user: (entry if entry is not None else UsageCounterEntry()).to_counter()
        for user, entry in (entries or {}).items()
    }


def save_counters(path: str | Path, ledger: UsageLedger) -> None:
    """整体覆盖写入使用计数.

    先写同目录下的临时文件并 fsync,再用 os.replace 原子替换,
    写入中途失败时原文件保持不变.

    Args:
        path: 计数文件路径
        ledger: 用户名到计数的映射

    Raises:
        CounterWriteError: 写入失败
    """
    path = Path(path)
    entries = {
        user: UsageCounterEntry.from_counter(counter)
        for user, counter in sorted(ledger.items())
    }
    data = _LEDGER_ADAPTER.dump_json(entries) + b"\n"

    tmp_path: Path | None = None
    try:
        try:
            mode = stat.S_IMODE(path.stat().st_mode)
        except FileNotFoundError:
            mode = _DEFAULT_FILE_MODE

        with tempfile.NamedTemporaryFile(
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_path = Path(tmp.name)
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())

        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)

    except OSError as exc:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)
        raise CounterWriteError(path, f"写入计数文件失败({exc.strerror})") from exc

    logger.debug("保存使用计数: path=%s, users=%d", path, len(ledger))
