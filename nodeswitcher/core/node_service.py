"""
Node.js 版本服务模块。

命令层的协调者：切换版本、查看当前版本、安装版本、重新检测，
所有操作都基于显式传入的 AppContext。
"""

from dataclasses import dataclass
from typing import Optional, List, Callable

from nodeswitcher.core.context import AppContext
from nodeswitcher.core.managers import (
    BaseVersionManager, VersionManagerError, OperationCancelledError,
)
from nodeswitcher.core.models import Scope, DetectionResult, SetVersionResult
from nodeswitcher.core.pin_handler import PinFileHandler, APPLY_APPLIED, APPLY_NO_MANAGER
from nodeswitcher.core import version_utils
from nodeswitcher.utils.logger import get_logger

logger = get_logger()

INSTALL_NEW = "安装新版本..."
CHOICE_INSTALL = "安装"
CHOICE_CANCEL = "取消"
SCOPE_GLOBAL_LABEL = "全局"
SCOPE_LOCAL_LABEL = "项目（当前目录）"
ACTIVATE_GLOBAL = "是（全局）"
ACTIVATE_LOCAL = "是（项目）"
ACTIVATE_NO = "否"


class NodeServiceError(Exception):
    """命令层错误基类。"""
    pass


class NoManagerError(NodeServiceError):
    """没有检测到任何版本管理工具。"""

    def __init__(self, install_urls: List[str]):
        self.install_urls = install_urls
        super().__init__(
            "未检测到 Node.js 版本管理工具（nvm/fnm/volta/mise/pnpm），请先安装其中一个: "
            + ", ".join(install_urls)
        )


class OfficialNodeInstalledError(NodeServiceError):
    """存在独立安装的 Node.js，会遮挡版本管理工具。"""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"检测到独立安装的 Node.js: {path}。它会覆盖版本管理工具的切换结果，"
            f"请先卸载它，或在配置中关闭 check_official_nodejs"
        )


@dataclass
class StatusInfo:
    """状态指示器显示的内容。"""

    text: str
    tooltip: str
    manager: Optional[str] = None
    version: Optional[str] = None


def build_status(manager: Optional[BaseVersionManager], version: Optional[str] = None,
                 error: Optional[str] = None) -> StatusInfo:
    """
    根据当前工具和版本生成状态文本。

    参数:
        manager: 当前适配器
        version: 当前版本
        error: 查询出错时的错误信息

    返回:
        StatusInfo
    """
    if manager is None or not manager.is_available:
        return StatusInfo("Node (no manager)", "未检测到版本管理工具\n点击进行配置")
    name = manager.get_display_name()
    if error:
        return StatusInfo("Node (error)", f"错误: {error}", manager=name)
    if version:
        return StatusInfo(
            f"Node {version}",
            f"当前 Node.js 版本: {version}\n管理工具: {name}\n点击切换",
            manager=name,
            version=version,
        )
    return StatusInfo("Node (not set)", f"未设置 Node.js 版本\n管理工具: {name}\n点击选择", manager=name)


class NodeVersionService:
    """
    Node.js 版本服务类。

    本类作为协调者，把用户操作委托给当前的适配器和固定版本处理器，
    并在状态变化后通知监听者。
    """

    def __init__(self, context: AppContext):
        """
        初始化版本服务。

        参数:
            context: 应用上下文
        """
        self.context = context
        self._listeners: List[Callable[[], None]] = []

    @property
    def detector(self):
        return self.context.detector

    @property
    def prompter(self):
        return self.context.prompter

    def add_listener(self, callback: Callable[[], None]) -> None:
        """注册状态变化监听者。"""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback()
            except Exception as e:
                logger.error(f"状态监听者执行失败: {e}")

    def _info(self, message: str) -> None:
        logger.info(message)
        if self.prompter is not None:
            self.prompter.info(message)

    def _error(self, message: str) -> None:
        logger.error(message)
        if self.prompter is not None:
            self.prompter.error(message)

    def ensure_detected(self) -> None:
        if self.detector.last_result is None:
            self.refresh(notify=False)

    def refresh(self, notify: bool = True) -> DetectionResult:
        """
        重新检测版本管理工具。

        返回:
            DetectionResult
        """
        result = self.detector.detect_all()
        if notify:
            self._notify()
        return result

    def require_manager(self) -> BaseVersionManager:
        """
        获取可用的适配器。

        返回:
            当前适配器

        抛出:
            OfficialNodeInstalledError: 存在独立安装的 Node.js 时抛出
            NoManagerError: 没有可用工具时抛出
        """
        self.ensure_detected()
        official = self.detector.detect_official_nodejs()
        if official:
            raise OfficialNodeInstalledError(official)
        manager = self.detector.get_active_manager()
        if manager is None:
            raise NoManagerError(self.detector.get_recommended_install_urls())
        return manager

    def _guard(self) -> Optional[BaseVersionManager]:
        try:
            return self.require_manager()
        except OfficialNodeInstalledError as e:
            if self.prompter is not None:
                self.prompter.warn(str(e))
            logger.warning(str(e))
        except NoManagerError as e:
            self._error(str(e))
        return None

    def get_status(self) -> StatusInfo:
        """获取状态指示器的内容，不会抛出异常。"""
        self.ensure_detected()
        manager = self.detector.get_active_manager()
        if manager is None:
            return build_status(None)
        try:
            return build_status(manager, manager.get_current_version())
        except Exception as e:
            logger.error(f"更新状态失败: {e}")
            return build_status(manager, error=str(e))

    def show_current_version(self) -> Optional[str]:
        """
        显示当前 Node.js 版本。

        返回:
            当前版本，未设置或没有工具时返回 None
        """
        manager = self._guard()
        if manager is None:
            return None
        current = manager.get_current_version()
        name = manager.get_display_name()
        if current:
            self._info(f"当前 Node.js 版本: {current}（由 {name} 管理）")
        else:
            self._info(f"当前没有设置 Node.js 版本（由 {name} 管理）")
        return current

    def list_installed_versions(self) -> List[str]:
        """
        列出已安装的版本（降序）。

        抛出:
            NodeServiceError: 没有可用工具时抛出
        """
        manager = self.require_manager()
        return version_utils.sort_version_strings_desc(manager.get_installed_versions())

    def list_available_versions(self) -> List[str]:
        """
        列出可安装的远程版本。

        抛出:
            NodeServiceError: 没有可用工具时抛出
        """
        return self.require_manager().get_available_versions()

    def _choose_scope(self, manager: BaseVersionManager) -> Optional[Scope]:
        if not manager.supports_scope():
            return manager.forced_scope or Scope.GLOBAL
        if self.prompter is None:
            return Scope.GLOBAL
        choice = self.prompter.ask("选择作用域", [SCOPE_GLOBAL_LABEL, SCOPE_LOCAL_LABEL])
        if choice == SCOPE_GLOBAL_LABEL:
            return Scope.GLOBAL
        if choice == SCOPE_LOCAL_LABEL:
            return Scope.LOCAL
        return None

    def _apply(self, manager: BaseVersionManager, version: str, scope: Scope) -> Optional[SetVersionResult]:
        try:
            result = manager.set_version(version, scope)
        except OperationCancelledError as e:
            self._info(str(e))
            return None
        except VersionManagerError as e:
            self._error(f"切换版本失败: {e}")
            return None

        for message in result.messages:
            self._info(message)
        self._info(f"Node.js 版本已切换到: {result.version}（{result.effective_scope.value}）")
        self._notify()
        return result

    def switch_version(self, version: Optional[str] = None,
                       scope: Optional[Scope] = None) -> Optional[SetVersionResult]:
        """
        切换 Node.js 版本。

        没有指定版本时列出已安装版本供用户选择；没有已安装版本时提示安装。

        参数:
            version: 版本号
            scope: 作用域，None 时在支持作用域的工具上询问用户

        返回:
            SetVersionResult，取消或失败时返回 None
        """
        manager = self._guard()
        if manager is None:
            return None

        if not version:
            installed = version_utils.sort_version_strings_desc(manager.get_installed_versions())
            if self.prompter is None:
                self._error("没有指定版本")
                return None
            if not installed:
                choice = self.prompter.ask("没有已安装的 Node.js 版本，是否安装一个？", [CHOICE_INSTALL, CHOICE_CANCEL])
                if choice == CHOICE_INSTALL:
                    self.install_version()
                return None
            choice = self.prompter.ask("选择 Node.js 版本", installed + [INSTALL_NEW])
            if choice is None:
                return None
            if choice == INSTALL_NEW:
                self.install_version()
                return None
            version = choice

        if scope is None:
            scope = self._choose_scope(manager)
            if scope is None:
                return None
        return self._apply(manager, version, scope)

    def install_version(self, version: Optional[str] = None, activate: Optional[str] = None) -> bool:
        """
        安装 Node.js 版本，安装后询问是否启用。

        参数:
            version: 版本号，None 时让用户输入
            activate: "global"、"local" 或 "no"，None 时询问用户

        返回:
            安装成功返回 True
        """
        manager = self._guard()
        if manager is None:
            return False

        if not version:
            if self.prompter is None:
                self._error("没有指定版本")
                return False
            version = self.prompter.ask_text("输入要安装的 Node.js 版本（例如 24、22.1.0、lts）")
            if not version or not version.strip():
                return False
            version = version.strip()

        self._info(f"正在安装 Node.js {version}...")
        try:
            manager.install_version(version)
        except VersionManagerError as e:
            self._error(f"安装版本失败: {e}")
            return False
        self._info(f"Node.js {version} 安装成功")

        if activate is None and self.prompter is not None:
            choices = [ACTIVATE_GLOBAL]
            if manager.supports_scope():
                choices.append(ACTIVATE_LOCAL)
            choices.append(ACTIVATE_NO)
            choice = self.prompter.ask(f"Node.js {version} 已安装，是否设为当前版本？", choices)
            activate = {ACTIVATE_GLOBAL: "global", ACTIVATE_LOCAL: "local"}.get(choice, "no")

        if activate in ("global", "local"):
            self._apply(manager, version, Scope(activate))
        else:
            self._notify()
        return True

    def create_pin_handler(self) -> PinFileHandler:
        """为当前工具创建固定版本处理器。"""
        self.ensure_detected()
        return PinFileHandler(
            self.detector.get_active_manager(),
            self.context.config_manager,
            self.prompter,
        )

    def apply_pin(self, workspace_dir: Optional[str] = None) -> str:
        """
        应用项目的固定版本。

        返回:
            pin_handler 中的 APPLY_* 结果
        """
        if self._guard() is None:
            return APPLY_NO_MANAGER
        handler = self.create_pin_handler()
        result = handler.auto_apply(workspace_dir or self.context.workspace_dir)
        if result == APPLY_APPLIED:
            self._notify()
        return result
