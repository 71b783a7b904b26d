"""
nvm-windows 适配器。

只在 Windows 上可用，只支持全局切换，nvm use 需要管理员权限。
"""

import os
from typing import Optional, List

from nodeswitcher.core.managers.base import BaseVersionManager
from nodeswitcher.core.models import Scope, PinArtifact, SetVersionResult
from nodeswitcher.core.process_executor import ExecutionError
from nodeswitcher.core import version_utils
from nodeswitcher.utils.logger import get_logger
from nodeswitcher.utils.permission_manager import is_admin

logger = get_logger()


class NvmWindowsManager(BaseVersionManager):
    """nvm-windows 适配器。"""

    name = "nvm-windows"
    display_name = "nvm-windows"
    executable_names = ("nvm",)
    forced_scope = Scope.GLOBAL
    pin_artifacts = (PinArtifact(".nvmrc"),)

    def get_known_paths(self) -> List[str]:
        home = self.home()
        paths = []
        for env_var in ("PROGRAMFILES", "PROGRAMFILES(X86)", "APPDATA"):
            base = os.environ.get(env_var)
            if base:
                paths.append(os.path.join(base, "nvm", "nvm.exe"))
        paths.extend([
            "C:\\Program Files\\nvm\\nvm.exe",
            "C:\\Program Files (x86)\\nvm\\nvm.exe",
            str(home / "AppData" / "Roaming" / "nvm" / "nvm.exe"),
        ])
        return list(dict.fromkeys(paths))

    def get_install_dirs(self) -> List[str]:
        dirs = [os.environ.get("NVM_HOME"), os.environ.get("NVM_SYMLINK")]
        if self.executable_path:
            dirs.append(os.path.dirname(self.executable_path))
        return [d for d in dirs if d]

    def detect(self) -> bool:
        if not self.is_windows:
            return False
        return super().detect()

    def _accept_path_hit(self, path: str) -> bool:
        # 排除 Unix 工具链带来的同名 nvm 脚本
        return path.lower().endswith("nvm.exe")

    def _list_installed(self) -> List[str]:
        return version_utils.parse_marked_list(self.run("list"))

    def _query_current(self) -> Optional[str]:
        try:
            version = version_utils.parse_version_query(self.run("current"))
            if version:
                return version
        except ExecutionError as e:
            logger.debug(f"nvm current 失败，改用 nvm list: {e}")
        return version_utils.parse_current_from_list(self.run("list"))

    def _list_available(self) -> List[str]:
        versions = version_utils.parse_nvm_windows_available(self.run("list available"))
        return version_utils.most_recent(versions)

    def _apply_version(self, version: str, result: SetVersionResult) -> None:
        if result.requested_scope == Scope.LOCAL:
            workspace = self._workspace_cwd()
            if workspace:
                self._write_pin_file(workspace, ".nvmrc", version)
                result.messages.append(f"已在 {workspace} 写入 .nvmrc 作为提示，实际切换为全局生效")

        if not is_admin():
            result.messages.append("nvm-windows 切换版本需要管理员权限，如果失败请以管理员身份运行")
        self.run(f"use {self._arg(version)}")

    def _install(self, version: str) -> None:
        self.run(f"install {self._arg(version)}")
