"""配置管理模块."""

from config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
