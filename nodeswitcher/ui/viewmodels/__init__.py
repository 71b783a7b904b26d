"""
UI ViewModels 模块。

提供托盘界面使用的 ViewModel 类。
"""

from .status_provider import StatusProvider
from .async_task_manager import AsyncTaskManager
from .pin_watcher import PinFileWatcher

__all__ = [
    "StatusProvider",
    "AsyncTaskManager",
    "PinFileWatcher",
]
