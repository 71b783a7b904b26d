"""
状态指示器模块。

向托盘图标提供当前 Node.js 版本的显示文本和提示信息。
"""

from PySide6.QtCore import QObject, Signal, Property, Slot

from nodeswitcher.core.node_service import NodeVersionService, StatusInfo, build_status
from nodeswitcher.utils.logger import get_logger

logger = get_logger()


class StatusProvider(QObject):
    """
    状态指示器类。

    保存最近一次的状态，文本变化时发出 statusChanged。
    """

    statusChanged = Signal()

    def __init__(self, service: NodeVersionService, parent=None):
        """
        初始化状态指示器。

        参数:
            service: 版本服务
            parent: 父对象
        """
        super().__init__(parent)
        self._service = service
        self._status: StatusInfo = build_status(None)

    @Property(str, notify=statusChanged)
    def text(self) -> str:
        """状态栏文本。"""
        return self._status.text

    @Property(str, notify=statusChanged)
    def tooltip(self) -> str:
        return self._status.tooltip

    @property
    def status(self) -> StatusInfo:
        return self._status

    @Slot(object)
    def update_status(self, status: StatusInfo):
        """设置新的状态（可由后台任务的信号调用）。"""
        if status == self._status:
            return
        logger.debug(f"状态更新: {self._status.text} -> {status.text}")
        self._status = status
        self.statusChanged.emit()

    @Slot()
    def refresh(self):
        """同步查询当前状态。"""
        self.update_status(self._service.get_status())
