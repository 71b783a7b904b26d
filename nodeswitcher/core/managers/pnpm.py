"""
pnpm env 适配器。

pnpm 只支持全局切换。Windows 不允许覆盖正在使用的 node.exe，
切换前需要让用户选择是否结束正在运行的 Node.js 进程。
"""

import os
from typing import Optional, List

from nodeswitcher.core.managers.base import BaseVersionManager, OperationCancelledError
from nodeswitcher.core.models import Scope, PinArtifact, SetVersionResult
from nodeswitcher.core.process_executor import ExecutionError
from nodeswitcher.core.process_helper import ProcessHelper
from nodeswitcher.core import version_utils
from nodeswitcher.utils.logger import get_logger

logger = get_logger()

KILL_AND_CONTINUE = "结束进程并继续"
CONTINUE_ANYWAY = "直接继续"
CANCEL = "取消"

FALLBACK_PIN_ARTIFACTS = (PinArtifact(".nvmrc"), PinArtifact(".node-version"))


class PnpmManager(BaseVersionManager):
    """pnpm 适配器，没有自己的固定文件，项目固定版本沿用 .nvmrc 和 .node-version。"""

    name = "pnpm"
    display_name = "pnpm"
    executable_names = ("pnpm",)
    forced_scope = Scope.GLOBAL

    def get_known_paths(self) -> List[str]:
        home = self.home()
        if self.is_windows:
            local_app_data = os.environ.get("LOCALAPPDATA") or str(home / "AppData" / "Local")
            app_data = os.environ.get("APPDATA") or str(home / "AppData" / "Roaming")
            return [
                os.path.join(local_app_data, "pnpm", "pnpm.exe"),
                os.path.join(app_data, "npm", "pnpm.cmd"),
                str(home / ".local" / "share" / "pnpm" / "pnpm.exe"),
            ]
        return [
            str(home / ".local" / "share" / "pnpm" / "pnpm"),
            "/usr/local/bin/pnpm",
            "/usr/bin/pnpm",
            "/opt/homebrew/bin/pnpm",
        ]

    def get_pin_artifacts(self):
        return FALLBACK_PIN_ARTIFACTS

    def get_config_file_name(self) -> Optional[str]:
        return None

    def get_install_dirs(self) -> List[str]:
        home = self.home()
        dirs = [os.environ.get("PNPM_HOME"), str(home / ".local" / "share" / "pnpm")]
        if self.is_windows:
            local_app_data = os.environ.get("LOCALAPPDATA") or str(home / "AppData" / "Local")
            dirs.append(os.path.join(local_app_data, "pnpm"))
        return [d for d in dict.fromkeys(dirs) if d]

    def _list_installed(self) -> List[str]:
        return version_utils.parse_marked_list(self.run("env list", cwd=self._workspace_cwd()))

    def _query_current(self) -> Optional[str]:
        stdout, _ = self.executor.run("node --version", cwd=self._workspace_cwd())
        return version_utils.parse_version_query(stdout)

    def _list_available(self) -> List[str]:
        versions = version_utils.parse_remote_list(self.run("env list --remote", cwd=self._workspace_cwd()))
        return version_utils.most_recent(versions)

    def _confirm_release_node_binary(self, result: SetVersionResult) -> None:
        """
        Windows 上询问是否结束占用 node.exe 的进程。

        抛出:
            OperationCancelledError: 用户选择取消时抛出
        """
        helper = ProcessHelper(self.executor, self.platform)
        processes = helper.get_node_processes()
        if not processes:
            return
        if self.prompter is None:
            logger.warning(f"检测到 {len(processes)} 个正在运行的 Node.js 进程，切换可能失败")
            return

        choice = self.prompter.ask(
            f"检测到 {len(processes)} 个正在运行的 Node.js 进程，它们会占用 node.exe 导致切换失败。",
            [KILL_AND_CONTINUE, CONTINUE_ANYWAY, CANCEL],
        )
        if choice == KILL_AND_CONTINUE:
            try:
                helper.kill_node_processes()
                result.messages.append(f"已结束 {len(processes)} 个 Node.js 进程")
            except ExecutionError as e:
                logger.warning(f"结束 Node.js 进程失败: {e}")
                result.messages.append(f"结束 Node.js 进程失败: {e}")
        elif choice == CONTINUE_ANYWAY:
            return
        else:
            raise OperationCancelledError("已取消切换 Node.js 版本")

    def _apply_version(self, version: str, result: SetVersionResult) -> None:
        if self.is_windows:
            self._confirm_release_node_binary(result)
        if self._ensure_installed(version):
            result.messages.append(f"pnpm 已安装 Node.js {version}")
        self.run(f"env use --global {self._arg(version)}", cwd=self._workspace_cwd())

    def _install(self, version: str) -> None:
        self.run(f"env add --global {self._arg(version)}", cwd=self._workspace_cwd())
