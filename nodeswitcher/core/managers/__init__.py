"""
版本管理工具适配器。

支持的工具是固定的集合，按检测优先级登记在 MANAGER_CLASSES 中。
"""

import sys
from typing import Optional, List, Dict, Type

from .base import (
    BaseVersionManager,
    VersionManagerError,
    SetVersionError,
    InstallError,
    PreconditionError,
    OperationCancelledError,
)
from .nvm import NvmManager
from .nvm_windows import NvmWindowsManager
from .fnm import FnmManager
from .volta import VoltaManager
from .mise import MiseManager
from .pnpm import PnpmManager

MANAGER_CLASSES: Dict[str, Type[BaseVersionManager]] = {
    cls.name: cls
    for cls in (NvmManager, NvmWindowsManager, FnmManager, VoltaManager, MiseManager, PnpmManager)
}

# 检测优先级，Windows 上用 nvm-windows 代替 nvm
UNIX_ORDER = ("nvm", "fnm", "volta", "mise", "pnpm")
WINDOWS_ORDER = ("nvm-windows", "fnm", "volta", "mise", "pnpm")


def manager_names(platform: Optional[str] = None) -> List[str]:
    """获取当前平台按优先级排列的工具名称。"""
    platform = platform or sys.platform
    return list(WINDOWS_ORDER if platform == "win32" else UNIX_ORDER)


def create_managers(executor, config_manager=None, workspace_dir=None, prompter=None,
                    platform: Optional[str] = None) -> List[BaseVersionManager]:
    """
    创建当前平台的全部适配器。

    参数:
        executor: 进程执行器
        config_manager: 配置管理器
        workspace_dir: 当前项目目录
        prompter: 用户交互接口
        platform: 平台标识，默认为 sys.platform

    返回:
        按检测优先级排列的适配器列表
    """
    platform = platform or sys.platform
    return [
        MANAGER_CLASSES[name](
            executor,
            config_manager=config_manager,
            workspace_dir=workspace_dir,
            prompter=prompter,
            platform=platform,
        )
        for name in manager_names(platform)
    ]


__all__ = [
    "BaseVersionManager", "VersionManagerError", "SetVersionError", "InstallError",
    "PreconditionError", "OperationCancelledError",
    "NvmManager", "NvmWindowsManager", "FnmManager", "VoltaManager", "MiseManager", "PnpmManager",
    "MANAGER_CLASSES", "manager_names", "create_managers",
]
