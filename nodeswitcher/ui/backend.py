"""
托盘界面后端模块。

在系统托盘中显示当前 Node.js 版本，并提供切换、安装和重新检测菜单。
具体工作委托给各个专用 ViewModel。
"""

import sys
from typing import Optional, List, Sequence

from PySide6.QtCore import QObject, Signal, Slot, Qt, QThread
from PySide6.QtGui import QAction
from PySide6.QtWidgets import (
    QApplication, QInputDialog, QMenu, QMessageBox, QStyle, QSystemTrayIcon,
)

from nodeswitcher.core.context import AppContext
from nodeswitcher.core.interfaces import IUserPrompter
from nodeswitcher.core.models import Scope
from nodeswitcher.core.node_service import NodeVersionService, SCOPE_GLOBAL_LABEL, SCOPE_LOCAL_LABEL
from nodeswitcher.ui.viewmodels import AsyncTaskManager, PinFileWatcher, StatusProvider
from nodeswitcher.utils.logger import get_logger

logger = get_logger()

APP_NAME = "NodeSwitcher"


class _DialogBridge(QObject):
    """把后台线程的对话框请求转到界面线程执行。"""

    askRequested = Signal(str, list, object)
    askTextRequested = Signal(str, object)
    messageRequested = Signal(str, str)

    def __init__(self, tray: Optional[QSystemTrayIcon] = None):
        super().__init__()
        self.tray = tray
        self.askRequested.connect(self._on_ask, Qt.BlockingQueuedConnection)
        self.askTextRequested.connect(self._on_ask_text, Qt.BlockingQueuedConnection)
        self.messageRequested.connect(self._on_message)

    @Slot(str, list, object)
    def _on_ask(self, message: str, choices: list, holder: dict):
        item, ok = QInputDialog.getItem(None, APP_NAME, message, choices, 0, False)
        holder["value"] = item if ok else None

    @Slot(str, object)
    def _on_ask_text(self, message: str, holder: dict):
        text, ok = QInputDialog.getText(None, APP_NAME, message)
        holder["value"] = text.strip() if ok and text.strip() else None

    @Slot(str, str)
    def _on_message(self, level: str, message: str):
        if level == "error" and self.tray is None:
            QMessageBox.critical(None, APP_NAME, message)
            return
        if self.tray is None:
            return
        icon = {
            "info": QSystemTrayIcon.Information,
            "warn": QSystemTrayIcon.Warning,
            "error": QSystemTrayIcon.Critical,
        }.get(level, QSystemTrayIcon.Information)
        self.tray.showMessage(APP_NAME, message, icon)


class QtPrompter(IUserPrompter):
    """
    基于 Qt 对话框的用户交互实现。

    可以在后台线程中调用，请求会阻塞等待界面线程返回结果。
    """

    def __init__(self):
        self._bridge = _DialogBridge()

    def set_tray(self, tray: QSystemTrayIcon) -> None:
        self._bridge.tray = tray

    def _on_gui_thread(self) -> bool:
        return QThread.currentThread() is self._bridge.thread()

    def ask(self, message: str, choices: Sequence[str]) -> Optional[str]:
        holder = {"value": None}
        if self._on_gui_thread():
            self._bridge._on_ask(message, list(choices), holder)
        else:
            self._bridge.askRequested.emit(message, list(choices), holder)
        return holder["value"]

    def ask_text(self, message: str) -> Optional[str]:
        holder = {"value": None}
        if self._on_gui_thread():
            self._bridge._on_ask_text(message, holder)
        else:
            self._bridge.askTextRequested.emit(message, holder)
        return holder["value"]

    def info(self, message: str) -> None:
        self._bridge.messageRequested.emit("info", message)

    def warn(self, message: str) -> None:
        self._bridge.messageRequested.emit("warn", message)

    def error(self, message: str) -> None:
        self._bridge.messageRequested.emit("error", message)


class TrayBackend(QObject):
    """
    托盘后端类。

    状态来自 StatusProvider，所有会启动外部进程的操作都交给 AsyncTaskManager。
    """

    statusDirty = Signal()

    def __init__(self, service: NodeVersionService, prompter: Optional[QtPrompter] = None, parent=None):
        """
        初始化托盘后端。

        参数:
            service: 版本服务
            prompter: 界面交互接口
            parent: 父对象
        """
        super().__init__(parent)
        logger.info("初始化 TrayBackend 开始")
        self._service = service
        self._prompter = prompter
        self._installed: List[str] = []
        self._current: str = ""

        self._status = StatusProvider(service, self)
        self._tasks = AsyncTaskManager(service, self)
        self._watcher: Optional[PinFileWatcher] = None
        self._disposed = False

        app = QApplication.instance()
        icon = app.style().standardIcon(QStyle.SP_ComputerIcon) if app is not None else None
        self._tray = QSystemTrayIcon(self)
        if icon is not None:
            self._tray.setIcon(icon)
        if prompter is not None:
            prompter.set_tray(self._tray)
        self._menu = QMenu()
        self._tray.setContextMenu(self._menu)
        self._tray.activated.connect(self._on_activated)

        self._connect_signals()
        self._rebuild_menu()
        logger.info("TrayBackend 初始化完成")

    def _connect_signals(self):
        self._tasks.statusLoaded.connect(self._status.update_status)
        self._tasks.versionsLoaded.connect(self._on_versions_loaded)
        self._tasks.taskFailed.connect(self._on_task_failed)
        self._status.statusChanged.connect(self._on_status_changed)
        self.statusDirty.connect(self.refreshStatus)
        # 服务的监听者可能在后台线程中被调用
        self._listener = self.statusDirty.emit
        self._service.add_listener(self._listener)

    @property
    def status_provider(self) -> StatusProvider:
        return self._status

    @property
    def tasks(self) -> AsyncTaskManager:
        return self._tasks

    def start(self) -> None:
        """显示托盘图标，开始检测并监视固定版本文件。"""
        self._tray.show()
        self._tasks.refresh()

    def _start_watcher(self) -> None:
        workspace = self._service.context.workspace_dir
        if not workspace or self._watcher is not None or self._disposed:
            return
        self._watcher = PinFileWatcher(self._service, workspace, apply=False, parent=self)
        self._watcher.pinChanged.connect(self._on_pin_changed)
        self._watcher.start()
        self._tasks.apply_pin(workspace)

    def dispose(self) -> None:
        self._disposed = True
        self._service.remove_listener(self._listener)
        if self._watcher is not None:
            self._watcher.dispose()
            self._watcher = None
        self._tasks.wait_for_done(5000)
        self._tray.hide()

    @Slot()
    def refreshStatus(self):
        """异步刷新状态（不重新检测工具）。"""
        self._tasks.load_status_async()

    @Slot()
    def redetect(self):
        """重新检测版本管理工具。"""
        self._tasks.refresh()

    @Slot(str)
    def switchVersion(self, version: str):
        """切换到指定版本，支持作用域的工具会先询问作用域。"""
        manager = self._service.detector.get_active_manager()
        scope: Optional[Scope] = Scope.GLOBAL
        if manager is not None and manager.supports_scope() and self._prompter is not None:
            choice = self._prompter.ask("选择作用域", [SCOPE_GLOBAL_LABEL, SCOPE_LOCAL_LABEL])
            if choice is None:
                return
            scope = Scope.LOCAL if choice == SCOPE_LOCAL_LABEL else Scope.GLOBAL
        self._tasks.switch_version(version, scope)

    @Slot()
    def installVersion(self):
        """输入版本号并在后台安装。"""
        if self._prompter is None:
            return
        version = self._prompter.ask_text("输入要安装的 Node.js 版本（例如 24、22.1.0、lts）")
        if version:
            self._tasks.install_version(version)

    @Slot()
    def applyPin(self):
        self._tasks.apply_pin(self._service.context.workspace_dir)

    @Slot(str)
    def _on_pin_changed(self, path: str):
        self._tasks.apply_pin(self._service.context.workspace_dir)

    @Slot(list, str)
    def _on_versions_loaded(self, installed: list, current: str):
        self._installed = list(installed)
        self._current = current
        self._rebuild_menu()
        if self._watcher is not None:
            # 重新检测后工具可能已变化
            self._watcher.reload()
        else:
            # 第一次检测完成后才开始监视
            self._start_watcher()

    @Slot(str, str)
    def _on_task_failed(self, name: str, error: str):
        if self._prompter is not None:
            self._prompter.error(f"{name} 失败: {error}")

    @Slot()
    def _on_status_changed(self):
        self._tray.setToolTip(self._status.tooltip)
        self._rebuild_menu()

    def _on_activated(self, reason):
        if reason == QSystemTrayIcon.Trigger:
            self._menu.popup(self._tray.geometry().center())

    def _rebuild_menu(self):
        self._menu.clear()

        header = QAction(self._status.text, self._menu)
        header.setEnabled(False)
        self._menu.addAction(header)
        self._menu.addSeparator()

        versions_menu = self._menu.addMenu("切换版本")
        if not self._installed:
            empty = versions_menu.addAction("（没有已安装的版本）")
            empty.setEnabled(False)
        for version in self._installed:
            action = versions_menu.addAction(version)
            action.setCheckable(True)
            action.setChecked(version == self._current)
            action.triggered.connect(lambda checked=False, v=version: self.switchVersion(v))

        self._menu.addAction("安装新版本...").triggered.connect(self.installVersion)
        self._menu.addAction("应用项目固定版本").triggered.connect(self.applyPin)
        self._menu.addAction("重新检测").triggered.connect(self.redetect)
        self._menu.addSeparator()
        self._menu.addAction("退出").triggered.connect(QApplication.quit)


def run_gui(args=None) -> int:
    """
    启动托盘界面。

    参数:
        args: 解析后的命令行参数（使用其中的 config、dir 选项）

    返回:
        退出码
    """
    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setOrganizationName(APP_NAME)
    app.setQuitOnLastWindowClosed(False)

    if not QSystemTrayIcon.isSystemTrayAvailable():
        logger.error("系统托盘不可用")
        QMessageBox.critical(None, APP_NAME, "系统托盘不可用，请使用命令行模式（nodeswitcher --help）")
        return 1

    prompter = QtPrompter()
    context = AppContext.create(
        config_dir=getattr(args, "config", None),
        workspace_dir=getattr(args, "dir", None),
        prompter=prompter,
    )
    backend = TrayBackend(NodeVersionService(context), prompter)
    backend.start()
    try:
        return app.exec()
    finally:
        backend.dispose()
