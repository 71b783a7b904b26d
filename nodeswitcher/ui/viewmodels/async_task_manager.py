"""
异步任务管理模块。

把会启动外部进程的版本服务操作放到线程池中执行，界面线程不会被阻塞。
"""

from typing import Optional, Callable, Any, List, Tuple
from PySide6.QtCore import QObject, Signal, Property, Slot, QRunnable, QThreadPool, QMetaObject, Qt

from nodeswitcher.core.models import Scope
from nodeswitcher.core.node_service import NodeVersionService
from nodeswitcher.core import version_utils
from nodeswitcher.utils.logger import get_logger

logger = get_logger()


class StatusLoader(QRunnable):
    """状态加载器（在后台线程执行）。"""

    def __init__(self, callback_obj, service: NodeVersionService, redetect: bool = False):
        """
        初始化状态加载器。

        参数:
            callback_obj: 回调对象
            service: 版本服务
            redetect: 是否先重新检测工具
        """
        super().__init__()
        self.callback_obj = callback_obj
        self.service = service
        self.redetect = redetect

    def run(self):
        """在后台线程查询状态和已安装版本。"""
        logger.debug(f"[ASYNC] StatusLoader.run 开始执行，重新检测: {self.redetect}")
        installed: List[str] = []
        current = ""
        try:
            if self.redetect:
                self.service.refresh(notify=False)
            status = self.service.get_status()
            manager = self.service.detector.get_active_manager()
            if manager is not None:
                installed = version_utils.sort_version_strings_desc(manager.get_installed_versions())
                current = status.version or ""
        except Exception as e:
            logger.error(f"[ASYNC] 加载状态失败: {e}", exc_info=True)
            self.callback_obj.taskFailed.emit("status", str(e))
            return
        finally:
            _finish(self.callback_obj)

        self.callback_obj.statusLoaded.emit(status)
        self.callback_obj.versionsLoaded.emit(installed, current)


class ServiceTask(QRunnable):
    """在后台线程执行一次版本服务调用。"""

    def __init__(self, callback_obj, name: str, func: Callable[..., Any], args: Tuple = ()):
        """
        初始化任务。

        参数:
            callback_obj: 回调对象
            name: 任务名称，随完成信号发出
            func: 要执行的服务方法
            args: 调用参数
        """
        super().__init__()
        self.callback_obj = callback_obj
        self.name = name
        self.func = func
        self.args = args

    def run(self):
        logger.info(f"[ASYNC] 任务开始: {self.name} {self.args}")
        try:
            result = self.func(*self.args)
        except Exception as e:
            logger.error(f"[ASYNC] 任务 {self.name} 执行异常: {e}", exc_info=True)
            self.callback_obj.taskFailed.emit(self.name, str(e))
            return
        finally:
            _finish(self.callback_obj)
        logger.info(f"[ASYNC] 任务完成: {self.name}")
        self.callback_obj.taskFinished.emit(self.name, result)


def _finish(callback_obj) -> None:
    try:
        QMetaObject.invokeMethod(callback_obj, "_task_done", Qt.QueuedConnection)
    except RuntimeError:
        logger.debug("[ASYNC] 回调对象已删除，跳过任务完成通知")


class AsyncTaskManager(QObject):
    """
    异步任务管理器类。

    线程池只有一个线程，所有任务按提交顺序依次执行。
    """

    busyChanged = Signal()
    messageChanged = Signal()
    statusLoaded = Signal(object)
    versionsLoaded = Signal(list, str)
    taskFinished = Signal(str, object)
    taskFailed = Signal(str, str)

    def __init__(self, service: NodeVersionService, parent=None):
        """
        初始化异步任务管理器。

        参数:
            service: 版本服务
            parent: 父对象
        """
        super().__init__(parent)
        logger.info("[ASYNC] 初始化 AsyncTaskManager")
        self._service = service
        self._pending: int = 0
        self._message: str = ""
        self._thread_pool = QThreadPool()
        self._thread_pool.setMaxThreadCount(1)
        self.taskFailed.connect(self._on_task_failed)

    @Property(bool, notify=busyChanged)
    def busy(self) -> bool:
        """是否有任务正在执行。"""
        return self._pending > 0

    @Property(str, notify=messageChanged)
    def message(self) -> str:
        return self._message

    @Slot(str)
    def _set_message(self, msg: str):
        self._message = msg
        self.messageChanged.emit()

    @Slot()
    def _task_done(self):
        self._pending = max(0, self._pending - 1)
        if self._pending == 0:
            self.busyChanged.emit()

    @Slot(str, str)
    def _on_task_failed(self, name: str, error: str):
        self._set_message(f"{name} 失败: {error}")

    def _start(self, runnable: QRunnable) -> None:
        self._pending += 1
        if self._pending == 1:
            self.busyChanged.emit()
        self._thread_pool.start(runnable)

    def _submit(self, name: str, func: Callable[..., Any], *args) -> None:
        self._start(ServiceTask(self, name, func, args))
        logger.debug(f"[ASYNC] 已将任务 {name} 提交到线程池")

    def load_status_async(self, redetect: bool = False):
        """异步加载状态和已安装版本列表。"""
        self._start(StatusLoader(self, self._service, redetect))

    def switch_version(self, version: str, scope: Optional[Scope] = None):
        """异步切换版本。"""
        self._set_message(f"正在切换到 Node.js {version}...")
        self._submit("switch", self._service.switch_version, version, scope)

    def install_version(self, version: str, activate: Optional[str] = None):
        """异步安装版本，activate 为 None 时在安装完成后询问。"""
        self._set_message(f"正在安装 Node.js {version}...")
        self._submit("install", self._service.install_version, version, activate)

    def apply_pin(self, workspace_dir: Optional[str] = None):
        """异步应用项目固定版本。"""
        self._submit("pin", self._service.apply_pin, workspace_dir)

    def refresh(self):
        """异步重新检测工具并刷新状态。"""
        self.load_status_async(redetect=True)

    def wait_for_done(self, msecs: int = -1) -> bool:
        """等待所有任务结束，主要供测试使用。"""
        return self._thread_pool.waitForDone(msecs)
