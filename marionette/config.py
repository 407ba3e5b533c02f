"""
配置模块

提供定位、捕获、回放、镜像存储、服务器与日志的配置管理。
所有配置可通过 MARIONETTE_* 环境变量覆盖。
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from marionette.logger.config import LogConfig, LogFormat, LogLevel


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).lower() == "true"


@dataclass
class LocatorSettings:
    """定位设置"""
    lenient: bool = True  # 无唯一可见命中时启用宽松回退


@dataclass
class CaptureSettings:
    """捕获设置"""
    merge_window_ms: float = 1000  # 同一目标连续输入的合并窗口
    url_poll_interval_ms: float = 500
    sync_interval_ms: float = 1000
    clickable_walk_depth: int = 5
    overlay_prefix: str = "marionette"  # 工具自身浮层的 id/class 前缀


@dataclass
class ReplaySettings:
    """回放设置"""
    retry_attempts: int = 5
    retry_backoff_ms: float = 200  # 第 n 次重试前等待 n × backoff
    retry_backoff_cap_ms: float = 1000
    pre_action_pause_ms: float = 100
    typing_delay_min_ms: float = 20
    typing_delay_max_ms: float = 50
    typing_delay_floor_ms: float = 5
    settle_timeout_ms: float = 15000
    settle_poll_ms: float = 100
    settle_extra_ms: float = 1000
    location_check_ms: float = 200
    use_anyway_on_final_retry: bool = True  # 最后一次重试时忽略可交互检查


@dataclass
class StoreSettings:
    """镜像存储设置"""
    persistent: bool = False
    path: Optional[str] = None  # 默认 ~/.marionette/mirror.json


@dataclass
class ServerSettings:
    """服务器设置"""
    host: str = "127.0.0.1"
    port: int = 8790
    reload: bool = False
    # CORS
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    cors_allow_credentials: bool = True


@dataclass
class LogSettings:
    """日志设置"""
    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.STRUCTURED
    enable_file: bool = False
    log_dir: Optional[str] = None

    def to_log_config(self) -> LogConfig:
        """转换为日志系统配置"""
        config = LogConfig(level=self.level, format=self.format, enable_file=self.enable_file)
        if self.log_dir:
            config.log_dir = self.log_dir
        return config


@dataclass
class AppConfig:
    """应用配置"""
    locator: LocatorSettings = field(default_factory=LocatorSettings)
    capture: CaptureSettings = field(default_factory=CaptureSettings)
    replay: ReplaySettings = field(default_factory=ReplaySettings)
    store: StoreSettings = field(default_factory=StoreSettings)
    server: ServerSettings = field(default_factory=ServerSettings)
    log: LogSettings = field(default_factory=LogSettings)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """从环境变量加载配置"""
        locator = LocatorSettings(
            lenient=_env_bool("MARIONETTE_LOCATOR_LENIENT", True),
        )

        capture = CaptureSettings(
            merge_window_ms=float(os.getenv("MARIONETTE_MERGE_WINDOW_MS", "1000")),
            url_poll_interval_ms=float(os.getenv("MARIONETTE_URL_POLL_MS", "500")),
            sync_interval_ms=float(os.getenv("MARIONETTE_SYNC_INTERVAL_MS", "1000")),
            overlay_prefix=os.getenv("MARIONETTE_OVERLAY_PREFIX", "marionette"),
        )

        replay = ReplaySettings(
            retry_attempts=int(os.getenv("MARIONETTE_RETRY_ATTEMPTS", "5")),
            settle_timeout_ms=float(os.getenv("MARIONETTE_SETTLE_TIMEOUT_MS", "15000")),
            use_anyway_on_final_retry=_env_bool("MARIONETTE_USE_ANYWAY_ON_FINAL_RETRY", True),
        )

        store = StoreSettings(
            persistent=_env_bool("MARIONETTE_STORE_PERSISTENT", False),
            path=os.getenv("MARIONETTE_STORE_PATH"),
        )

        server = ServerSettings(
            host=os.getenv("MARIONETTE_HOST", "127.0.0.1"),
            port=int(os.getenv("MARIONETTE_PORT", "8790")),
            reload=_env_bool("MARIONETTE_RELOAD", False),
            cors_allow_origins=os.getenv("MARIONETTE_CORS_ORIGINS", "*").split(","),
        )

        log = LogSettings(
            level=LogLevel[os.getenv("MARIONETTE_LOG_LEVEL", "INFO").upper()],
            format=LogFormat(os.getenv("MARIONETTE_LOG_FORMAT", "structured").lower()),
            enable_file=_env_bool("MARIONETTE_LOG_FILE", False),
            log_dir=os.getenv("MARIONETTE_LOG_DIR"),
        )

        return cls(locator=locator, capture=capture, replay=replay, store=store, server=server, log=log)

    def to_dict(self) -> dict:
        """转换为字典"""
        return {
            "locator": {
                "lenient": self.locator.lenient,
            },
            "capture": {
                "merge_window_ms": self.capture.merge_window_ms,
                "url_poll_interval_ms": self.capture.url_poll_interval_ms,
                "sync_interval_ms": self.capture.sync_interval_ms,
                "clickable_walk_depth": self.capture.clickable_walk_depth,
                "overlay_prefix": self.capture.overlay_prefix,
            },
            "replay": {
                "retry_attempts": self.replay.retry_attempts,
                "retry_backoff_ms": self.replay.retry_backoff_ms,
                "retry_backoff_cap_ms": self.replay.retry_backoff_cap_ms,
                "settle_timeout_ms": self.replay.settle_timeout_ms,
                "use_anyway_on_final_retry": self.replay.use_anyway_on_final_retry,
            },
            "store": {
                "persistent": self.store.persistent,
                "path": self.store.path,
            },
            "server": {
                "host": self.server.host,
                "port": self.server.port,
                "reload": self.server.reload,
            },
            "log": {
                "level": self.log.level.name,
                "format": self.log.format.value,
                "enable_file": self.log.enable_file,
            },
        }


# 全局配置实例
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """获取全局配置"""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """设置全局配置"""
    global _config
    _config = config


def reset_config() -> None:
    """重置配置"""
    global _config
    _config = None


__all__ = [
    "LocatorSettings",
    "CaptureSettings",
    "ReplaySettings",
    "StoreSettings",
    "ServerSettings",
    "LogSettings",
    "AppConfig",
    "get_config",
    "set_config",
    "reset_config",
]
