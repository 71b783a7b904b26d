"""
版本管理工具适配器基类。

定义所有适配器共享的检测流程、错误类型、参数校验和作用域处理。
子类只需要提供工具特有的路径、命令和输出解析。
"""

import os
import re
import shlex
import shutil
import sys
import threading
from pathlib import Path
from typing import Optional, List, Sequence

from nodeswitcher.core.interfaces import IVersionManager, IUserPrompter
from nodeswitcher.core.models import Scope, PinArtifact, SetVersionResult
from nodeswitcher.core.process_executor import ProcessExecutor, ExecutionError
from nodeswitcher.core import version_utils
from nodeswitcher.utils.input_validator import InputValidator, InputValidationError
from nodeswitcher.utils.logger import get_logger

logger = get_logger()

_UNSAFE_ARG = re.compile(r"[^\w@%+=:,./-]")

SCOPE_LABELS = {
    Scope.GLOBAL: "全局",
    Scope.LOCAL: "项目",
}


class VersionManagerError(Exception):
    """版本管理工具错误基类。"""
    pass


class SetVersionError(VersionManagerError):
    """切换版本失败异常。"""
    pass


class InstallError(VersionManagerError):
    """安装版本失败异常。"""
    pass


class PreconditionError(VersionManagerError):
    """前置条件不满足异常，在执行任何外部命令之前抛出。"""
    pass


class OperationCancelledError(VersionManagerError):
    """用户取消操作异常。"""
    pass


class BaseVersionManager(IVersionManager):
    """
    版本管理工具适配器基类。

    查询类操作（列表、当前版本、远程版本）失败时返回空结果，不抛出异常；
    修改类操作（设置、安装）在同一个适配器上串行执行，失败时抛出带有工具错误输出的异常。
    """

    name = "base"
    display_name = "base"
    # 在 PATH 中查找时使用的可执行文件名
    executable_names: Sequence[str] = ()
    # 不支持作用域的工具只能在这个作用域上工作
    forced_scope: Optional[Scope] = None
    pin_artifacts: Sequence[PinArtifact] = ()

    def __init__(
        self,
        executor: ProcessExecutor,
        config_manager=None,
        workspace_dir: Optional[str] = None,
        prompter: Optional[IUserPrompter] = None,
        platform: Optional[str] = None,
    ):
        """
        初始化适配器。

        参数:
            executor: 进程执行器
            config_manager: 配置管理器，用于读取用户配置的工具路径
            workspace_dir: 当前项目目录
            prompter: 用户交互接口
            platform: 平台标识，默认为 sys.platform
        """
        self.executor = executor
        self.config_manager = config_manager
        self.workspace_dir = workspace_dir
        self.prompter = prompter
        self.platform = platform or sys.platform
        self.command: Optional[str] = None
        self.executable_path: Optional[str] = None
        self.is_available = False
        self._lock = threading.RLock()

    @property
    def is_windows(self) -> bool:
        return self.platform == "win32"

    @staticmethod
    def home() -> Path:
        return Path(os.path.expanduser("~"))

    def get_known_paths(self) -> List[str]:
        """获取当前平台上工具的常见安装位置。"""
        return []

    def get_install_dirs(self) -> List[str]:
        """获取工具存放 Node.js 的目录，这些目录下的 node 不视为独立安装。"""
        return []

    def _quote(self, path: str) -> str:
        if self.is_windows:
            return f'"{path}"' if " " in path else path
        return shlex.quote(path)

    def _arg(self, value: str) -> str:
        """把版本号等参数转成可以安全拼进 shell 命令行的形式，避免 * 等字符被展开。"""
        if self.is_windows:
            return f'"{value}"' if _UNSAFE_ARG.search(value) else value
        return shlex.quote(value)

    def _build_command(self, path: str) -> str:
        """根据可执行文件路径构造调用字符串。"""
        return self._quote(path)

    def _accept_path_hit(self, path: str) -> bool:
        """PATH 中找到的结果是否可用。"""
        return True

    def _configured_path(self) -> str:
        if self.config_manager is None:
            return ""
        return self.config_manager.get_tool_path(self.name)

    def _find_executable(self) -> Optional[str]:
        """按 用户配置 > 常见位置 > PATH 的顺序查找工具。"""
        custom_path = self._configured_path()
        if custom_path:
            if os.path.isfile(custom_path):
                logger.debug(f"使用配置的 {self.name} 路径: {custom_path}")
                return custom_path
            logger.warning(f"配置的 {self.name} 路径不存在: {custom_path}")

        for path in self.get_known_paths():
            if os.path.isfile(path):
                return path

        for exe in self.executable_names:
            found = shutil.which(exe)
            if found and self._accept_path_hit(found):
                return found
        return None

    def detect(self) -> bool:
        """
        检测工具是否已安装。

        未找到时不修改任何状态；任何异常都被记录并视为未找到。

        返回:
            找到返回 True
        """
        try:
            path = self._find_executable()
            if not path:
                logger.debug(f"未检测到 {self.name}")
                return False
            command = self._build_command(path)
        except Exception as e:
            logger.warning(f"检测 {self.name} 时出错: {e}")
            return False

        self.executable_path = path
        self.command = command
        self.is_available = True
        logger.info(f"检测到 {self.name}: {path}")
        return True

    def run(self, args: str, cwd: Optional[str] = None) -> str:
        """
        执行工具子命令并返回标准输出。

        参数:
            args: 子命令和参数
            cwd: 工作目录

        返回:
            标准输出

        抛出:
            ExecutionError: 命令执行失败时抛出
        """
        stdout, _ = self.executor.run(f"{self.command} {args}", cwd=cwd)
        return stdout

    def _workspace_cwd(self) -> Optional[str]:
        if self.workspace_dir and os.path.isdir(self.workspace_dir):
            return self.workspace_dir
        return None

    def _require_workspace(self) -> str:
        workspace = self._workspace_cwd()
        if workspace is None:
            raise PreconditionError("没有打开的项目目录，请先进入项目目录或使用 --dir 指定")
        return workspace

    def _require_available(self) -> None:
        if not self.is_available:
            raise PreconditionError(f"{self.get_display_name()} 尚未检测到，无法执行该操作")

    def _validate_version(self, version: Optional[str]) -> str:
        """
        校验并规范化要传给工具的版本号。

        抛出:
            PreconditionError: 版本号为空或包含非法字符时抛出
        """
        version = version_utils.normalize_version(version)
        if not version:
            raise PreconditionError("版本号不能为空")
        try:
            InputValidator.validate_version_string(version)
            InputValidator.validate_command_arg(version)
        except InputValidationError as e:
            raise PreconditionError(str(e)) from e
        return version

    def _write_pin_file(self, directory: str, filename: str, version: str) -> str:
        """在目录中写入纯文本固定文件，返回文件路径。"""
        path = os.path.join(directory, filename)
        with open(path, "w", encoding="utf-8") as f:
            f.write(f"{version}\n")
        logger.info(f"已写入 {path}: {version}")
        return path

    def get_installed_versions(self) -> List[str]:
        """
        列出已安装的 Node.js 版本。

        返回:
            去重后的版本列表，失败时返回空列表
        """
        if not self.is_available:
            return []
        try:
            return version_utils.unique(self._list_installed())
        except (ExecutionError, OSError) as e:
            logger.warning(f"获取 {self.name} 已安装版本失败: {e}")
            return []

    def get_current_version(self) -> Optional[str]:
        """
        获取当前生效的 Node.js 版本。

        返回:
            版本号，未设置或无法判断时返回 None
        """
        if not self.is_available:
            return None
        try:
            return self._query_current()
        except (ExecutionError, OSError, ValueError) as e:
            logger.debug(f"获取 {self.name} 当前版本失败: {e}")
            return None

    def get_available_versions(self) -> List[str]:
        """
        列出可安装的远程版本。

        返回:
            最多 20 个版本（最新在前），失败时返回空列表
        """
        if not self.is_available:
            return []
        try:
            versions = self._list_available()
        except (ExecutionError, OSError) as e:
            logger.warning(f"获取 {self.name} 远程版本失败: {e}")
            return []
        return version_utils.unique(versions)[:version_utils.MAX_AVAILABLE_VERSIONS]

    def set_version(self, version: str, scope: Scope = Scope.GLOBAL) -> SetVersionResult:
        """
        设置全局或项目级的 Node.js 版本。

        不支持作用域的工具会把请求的作用域改为它唯一支持的作用域，
        并通过结果中的 messages 告知调用方。

        参数:
            version: 版本号
            scope: 作用域

        返回:
            SetVersionResult

        抛出:
            PreconditionError: 版本号无效或缺少项目目录时抛出
            SetVersionError: 工具命令执行失败时抛出
            OperationCancelledError: 用户取消时抛出
        """
        try:
            requested = Scope.parse(scope) or Scope.GLOBAL
        except ValueError as e:
            raise PreconditionError(f"无效的作用域: {scope}") from e
        version = self._validate_version(version)
        self._require_available()

        effective = self.forced_scope or requested
        result = SetVersionResult(version=version, requested_scope=requested, effective_scope=effective)
        if effective != requested:
            result.messages.append(
                f"{self.get_display_name()} 只支持{SCOPE_LABELS[effective]}设置，"
                f"已将{SCOPE_LABELS[requested]}设置改为{SCOPE_LABELS[effective]}设置"
            )
        if effective == Scope.LOCAL:
            self._require_workspace()

        with self._lock:
            logger.info(f"{self.name}: 设置 Node.js {version} ({effective.value})")
            try:
                self._apply_version(version, result)
            except ExecutionError as e:
                raise SetVersionError(f"切换到 Node.js {version} 失败: {e}") from e
            except OSError as e:
                raise SetVersionError(f"切换到 Node.js {version} 失败: {e}") from e
        return result

    def install_version(self, version: str) -> None:
        """
        安装指定的 Node.js 版本，不重试。

        参数:
            version: 版本号

        抛出:
            PreconditionError: 版本号无效时抛出
            InstallError: 安装命令失败时抛出
        """
        version = self._validate_version(version)
        self._require_available()
        with self._lock:
            logger.info(f"{self.name}: 安装 Node.js {version}")
            try:
                self._install(version)
            except ExecutionError as e:
                raise InstallError(f"安装 Node.js {version} 失败: {e}") from e

    def _ensure_installed(self, version: str) -> bool:
        """版本未安装时先安装，返回是否执行了安装。"""
        if version in self.get_installed_versions():
            return False
        self._install(version)
        return True

    def supports_scope(self) -> bool:
        return self.forced_scope is None

    def get_pin_artifacts(self) -> Sequence[PinArtifact]:
        return self.pin_artifacts

    def get_config_file_name(self) -> Optional[str]:
        return self.pin_artifacts[0].filename if self.pin_artifacts else None

    def get_display_name(self) -> str:
        return self.display_name

    # 以下由子类实现

    def _list_installed(self) -> List[str]:
        raise NotImplementedError

    def _query_current(self) -> Optional[str]:
        raise NotImplementedError

    def _list_available(self) -> List[str]:
        raise NotImplementedError

    def _apply_version(self, version: str, result: SetVersionResult) -> None:
        raise NotImplementedError

    def _install(self, version: str) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} available={self.is_available} command={self.command!r}>"
