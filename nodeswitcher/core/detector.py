"""
工具检测模块。

按优先级检测已安装的 Node.js 版本管理工具并选出当前使用的工具，
同时检查是否存在不受任何工具管理的 Node.js 安装。
"""

import os
import shutil
import sys
from typing import Optional, List

from nodeswitcher.core.config_manager import ConfigManager
from nodeswitcher.core.interfaces import IUserPrompter
from nodeswitcher.core.managers import BaseVersionManager, create_managers
from nodeswitcher.core.models import DetectionResult
from nodeswitcher.core.process_executor import ProcessExecutor
from nodeswitcher.utils.logger import get_logger

logger = get_logger()

INSTALL_URLS = {
    "nvm": "https://github.com/nvm-sh/nvm",
    "nvm-windows": "https://github.com/coreybutler/nvm-windows",
    "fnm": "https://github.com/Schniz/fnm",
    "volta": "https://volta.sh/",
    "mise": "https://mise.jdx.dev/getting-started.html",
    "pnpm": "https://pnpm.io/installation",
}


def _is_within(path: str, directory: str) -> bool:
    """
    判断 path 是否位于 directory 之下。

    path 本身和它解析符号链接后的路径只要有一个在目录下就算，
    例如 mise 的 shims/node 是指向 mise 可执行文件的链接。
    """
    directories = {
        os.path.normcase(os.path.abspath(directory)),
        os.path.normcase(os.path.realpath(directory)),
    }
    candidates = {
        os.path.normcase(os.path.abspath(path)),
        os.path.normcase(os.path.realpath(path)),
    }
    for candidate in candidates:
        for base in directories:
            try:
                if os.path.commonpath([candidate, base]) == base:
                    return True
            except ValueError:
                # Windows 上不同盘符的路径没有公共前缀
                continue
    return False


class ToolDetector:
    """
    工具检测器类。

    有两种状态：未检测到（active_manager 为 None）和已选中某个适配器。
    每次 detect_all 都会重新创建适配器列表。
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        executor: ProcessExecutor,
        platform: Optional[str] = None,
        workspace_dir: Optional[str] = None,
        prompter: Optional[IUserPrompter] = None,
    ):
        """
        初始化工具检测器。

        参数:
            config_manager: 配置管理器
            executor: 进程执行器
            platform: 平台标识，默认为 sys.platform
            workspace_dir: 当前项目目录
            prompter: 用户交互接口
        """
        self.config_manager = config_manager
        self.executor = executor
        self.platform = platform or sys.platform
        self.workspace_dir = workspace_dir
        self.prompter = prompter
        self.managers: List[BaseVersionManager] = []
        self.active_manager: Optional[BaseVersionManager] = None
        self.last_result: Optional[DetectionResult] = None

    def _create_managers(self) -> List[BaseVersionManager]:
        return create_managers(
            self.executor,
            config_manager=self.config_manager,
            workspace_dir=self.workspace_dir,
            prompter=self.prompter,
            platform=self.platform,
        )

    def _find_preferred(self, preferred: str) -> Optional[BaseVersionManager]:
        """按名称查找首选工具，先精确匹配再子串匹配（例如 nvm 匹配 nvm-windows）。"""
        for manager in self.managers:
            if manager.name == preferred:
                return manager
        for manager in self.managers:
            if preferred in manager.name:
                return manager
        return None

    def detect_all(self) -> DetectionResult:
        """
        检测所有工具并选出当前使用的工具。

        配置了首选工具且检测成功时直接使用它，否则按 nvm > fnm > volta > mise > pnpm
        的顺序选择第一个检测成功的工具。

        返回:
            DetectionResult
        """
        self.managers = self._create_managers()
        self.active_manager = None
        result = DetectionResult()

        preferred = self.config_manager.get_preferred_tool()
        if preferred and preferred != "auto":
            manager = self._find_preferred(preferred)
            if manager is None:
                logger.warning(f"首选工具 {preferred} 不受支持，改为自动检测")
            elif manager.detect():
                result.tried.append((manager.name, True))
                self.active_manager = manager
                result.active = manager.name
                logger.info(f"使用首选工具: {manager.name}")
                self.last_result = result
                return result
            else:
                result.tried.append((manager.name, False))
                logger.warning(f"首选工具 {preferred} 未检测到，改为自动检测")

        tried = {name for name, _ in result.tried}
        for manager in self.managers:
            if manager.name in tried:
                continue
            ok = manager.detect()
            result.tried.append((manager.name, ok))
            if ok and self.active_manager is None:
                self.active_manager = manager
                result.active = manager.name
                logger.info(f"检测到并使用: {manager.name}")
                break

        if self.active_manager is None:
            logger.warning("未检测到任何 Node.js 版本管理工具")
        self.last_result = result
        return result

    def get_active_manager(self) -> Optional[BaseVersionManager]:
        """获取当前使用的适配器。"""
        return self.active_manager

    def get_manager(self, name: str) -> Optional[BaseVersionManager]:
        """按名称获取适配器。"""
        if not self.managers:
            self.managers = self._create_managers()
        for manager in self.managers:
            if manager.name == name:
                return manager
        return None

    def get_all_managers(self) -> List[BaseVersionManager]:
        """
        获取所有已检测到的适配器。

        返回:
            可用的适配器列表
        """
        return [m for m in self.managers if m.is_available]

    def detect_available(self) -> List[BaseVersionManager]:
        """检测所有工具（不改变当前使用的工具），返回可用的适配器。"""
        if not self.managers:
            self.managers = self._create_managers()
        for manager in self.managers:
            if not manager.is_available:
                manager.detect()
        return self.get_all_managers()

    def switch_manager(self, name: str) -> bool:
        """
        手动切换到指定工具，只有重新检测成功才会生效。

        参数:
            name: 工具名称

        返回:
            切换成功返回 True，失败时保持原来的工具
        """
        manager = self.get_manager(name)
        if manager is None:
            logger.warning(f"未知工具: {name}")
            return False
        if not manager.detect():
            logger.warning(f"切换失败，未检测到 {name}")
            return False
        self.active_manager = manager
        logger.info(f"已切换到: {name}")
        return True

    def get_install_url(self, name: str) -> str:
        return INSTALL_URLS.get(name, "")

    def get_recommended_install_urls(self) -> List[str]:
        """未检测到工具时推荐的安装地址。"""
        nvm = "nvm-windows" if self.platform == "win32" else "nvm"
        return [INSTALL_URLS[nvm], INSTALL_URLS["mise"]]

    def _node_candidates(self) -> List[str]:
        candidates = []
        found = shutil.which("node")
        if found:
            candidates.append(found)
        if self.platform == "win32":
            for env_var in ("ProgramFiles", "ProgramFiles(x86)"):
                base = os.environ.get(env_var)
                if base:
                    candidates.append(os.path.join(base, "nodejs", "node.exe"))
        return [c for c in dict.fromkeys(candidates) if os.path.isfile(c)]

    def detect_official_nodejs(self) -> Optional[str]:
        """
        检测不受任何版本管理工具管理的 Node.js 安装。

        这样的安装会在 PATH 中遮挡版本管理工具，调用方应提示用户并拒绝后续操作。

        返回:
            独立安装的 node 路径，没有时返回 None
        """
        if not self.config_manager.get_setting("check_official_nodejs", True):
            return None

        managers = self.managers or self._create_managers()
        managed_dirs = []
        for manager in managers:
            try:
                managed_dirs.extend(manager.get_install_dirs())
            except OSError as e:
                logger.debug(f"获取 {manager.name} 安装目录失败: {e}")

        for candidate in self._node_candidates():
            if any(_is_within(candidate, d) for d in managed_dirs):
                continue
            logger.warning(f"检测到独立安装的 Node.js: {candidate}")
            return candidate
        return None
