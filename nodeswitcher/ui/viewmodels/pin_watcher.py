"""
固定版本文件监视模块。

监视项目目录及其上级目录中的 .nvmrc、.node-version 等文件，
文件创建或修改后重新评估固定版本。
"""

import os
from typing import List, Optional

from PySide6.QtCore import QObject, Signal, Slot, QFileSystemWatcher, QTimer

from nodeswitcher.core.node_service import NodeVersionService
from nodeswitcher.core.pin_handler import PinFileHandler
from nodeswitcher.utils.logger import get_logger

logger = get_logger()

DEBOUNCE_MS = 300


class PinFileWatcher(QObject):
    """
    固定版本文件监视器类。

    监视会一直保留到调用 dispose() 为止。
    """

    pinChanged = Signal(str)

    def __init__(
        self,
        service: NodeVersionService,
        workspace_dir: str,
        apply: bool = True,
        debounce_ms: int = DEBOUNCE_MS,
        parent=None,
    ):
        """
        初始化监视器。

        参数:
            service: 版本服务
            workspace_dir: 项目目录
            apply: 文件变化后是否直接调用 service.apply_pin
            debounce_ms: 合并连续变化的等待时间（毫秒）
            parent: 父对象
        """
        super().__init__(parent)
        self._service = service
        self._workspace_dir = os.path.abspath(workspace_dir)
        self._apply = apply
        self._handler: Optional[PinFileHandler] = None
        self._pending: Optional[str] = None
        self._disposed = False

        self._watcher = QFileSystemWatcher(self)
        self._watcher.fileChanged.connect(self._on_file_changed)
        self._watcher.directoryChanged.connect(self._on_directory_changed)

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(debounce_ms)
        self._timer.timeout.connect(self._flush)

    def _directories(self) -> List[str]:
        dirs = []
        current = self._workspace_dir
        while True:
            dirs.append(current)
            parent = os.path.dirname(current)
            if parent == current:
                return dirs
            current = parent

    def _candidate_files(self) -> List[str]:
        if self._handler is None:
            return []
        names = self._handler.get_watch_filenames()
        return [
            os.path.join(d, name)
            for d in self._directories()
            for name in names
            if os.path.isfile(os.path.join(d, name))
        ]

    def _rewatch(self) -> None:
        watched_dirs = set(self._watcher.directories())
        dirs = [d for d in self._directories() if d not in watched_dirs and os.path.isdir(d)]
        if dirs:
            self._watcher.addPaths(dirs)

        watched_files = set(self._watcher.files())
        files = [f for f in self._candidate_files() if f not in watched_files]
        if files:
            self._watcher.addPaths(files)

    def start(self) -> None:
        """开始监视。"""
        if self._disposed:
            raise RuntimeError("监视器已释放")
        self._handler = self._service.create_pin_handler()
        self._rewatch()
        logger.info(
            f"开始监视固定版本文件: {', '.join(self._handler.get_watch_patterns())}（{self._workspace_dir}）"
        )

    def reload(self) -> None:
        """
        按当前使用的工具重新创建固定版本处理器并更新监视列表。

        重新检测后工具可能已经变化，旧工具的文件不再监视。
        """
        if self._disposed:
            return
        self._handler = self._service.create_pin_handler()
        wanted = set(self._candidate_files())
        stale = [f for f in self._watcher.files() if f not in wanted]
        if stale:
            self._watcher.removePaths(stale)
        self._rewatch()
        logger.debug(f"已更新固定版本文件监视: {', '.join(self._handler.get_watch_filenames())}")

    def watched_files(self) -> List[str]:
        return list(self._watcher.files())

    def watched_directories(self) -> List[str]:
        return list(self._watcher.directories())

    @Slot(str)
    def _on_file_changed(self, path: str):
        self._schedule(path)

    @Slot(str)
    def _on_directory_changed(self, directory: str):
        before = set(self._watcher.files())
        self._rewatch()
        for path in set(self._watcher.files()) - before:
            self._schedule(path)

    def _schedule(self, path: str) -> None:
        if self._disposed:
            return
        self._pending = path
        self._timer.start()

    @Slot()
    def _flush(self):
        path, self._pending = self._pending, None
        if not path or self._handler is None or self._disposed:
            return
        # 原子替换写入后文件会从监视列表中移除
        self.reload()
        self.check_now(path)

    def check_now(self, path: str) -> bool:
        """
        立即评估一次文件变化。

        参数:
            path: 发生变化的文件

        返回:
            触发了重新评估返回 True
        """
        if self._handler is None or not self._handler.should_reevaluate(path):
            logger.debug(f"忽略文件变化: {path}")
            return False
        logger.info(f"固定版本文件已变化: {path}")
        self.pinChanged.emit(path)
        if self._apply:
            self._service.apply_pin(self._workspace_dir)
        return True

    def dispose(self) -> None:
        """停止监视并释放所有监视路径。"""
        if self._disposed:
            return
        self._disposed = True
        self._timer.stop()
        paths = self.watched_files() + self.watched_directories()
        if paths:
            self._watcher.removePaths(paths)
        logger.info("已停止监视固定版本文件")
