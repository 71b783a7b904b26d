"""
NodeSwitcher 核心模块。

提供配置管理、版本管理工具适配、工具检测和固定版本文件处理功能。
"""

from .interfaces import IConfigManager, IVersionManager, IUserPrompter, IRemoteFetcher
from .config_manager import ConfigManager, ConfigValidationError, ConfigLoadError, ConfigSaveError
from .process_executor import ProcessExecutor, ExecutionError
from .models import Scope, PinArtifact, VersionPin, DetectionResult, SetVersionResult
from .managers import (
    BaseVersionManager, VersionManagerError, SetVersionError, InstallError,
    PreconditionError, OperationCancelledError, create_managers,
)
from .remote_fetcher import RemoteFetcher, RemoteFetcherError, NetworkError, MirrorError, MirrorStatus
from .detector import ToolDetector
from .pin_handler import PinFileHandler
from .context import AppContext
from .node_service import NodeVersionService, NodeServiceError, NoManagerError, OfficialNodeInstalledError
from . import version_utils

__all__ = [
    "IConfigManager", "IVersionManager", "IUserPrompter", "IRemoteFetcher",
    "ConfigManager", "ConfigValidationError", "ConfigLoadError", "ConfigSaveError",
    "ProcessExecutor", "ExecutionError",
    "Scope", "PinArtifact", "VersionPin", "DetectionResult", "SetVersionResult",
    "BaseVersionManager", "VersionManagerError", "SetVersionError", "InstallError",
    "PreconditionError", "OperationCancelledError", "create_managers",
    "RemoteFetcher", "RemoteFetcherError", "NetworkError", "MirrorError", "MirrorStatus",
    "ToolDetector", "PinFileHandler", "AppContext",
    "NodeVersionService", "NodeServiceError", "NoManagerError", "OfficialNodeInstalledError",
    "version_utils",
]
