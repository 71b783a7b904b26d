"""
Volta 适配器。

全局设置使用 volta install，项目级设置使用 volta pin 写入 package.json 的 volta.node 字段。
Volta 没有远程版本列表命令，可安装版本从 Node.js 发布索引获取。
"""

import os
from typing import Optional, List

from nodeswitcher.core.managers.base import BaseVersionManager
from nodeswitcher.core.models import Scope, PinArtifact, SetVersionResult
from nodeswitcher.core.remote_fetcher import RemoteFetcher
from nodeswitcher.core import version_utils


class VoltaManager(BaseVersionManager):
    """Volta 适配器。"""

    name = "volta"
    display_name = "Volta"
    executable_names = ("volta",)
    pin_artifacts = (PinArtifact("package.json", kind="package_json"),)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.volta_home = os.environ.get("VOLTA_HOME") or str(self.home() / ".volta")
        self.remote_fetcher: Optional[RemoteFetcher] = None

    def get_known_paths(self) -> List[str]:
        home = self.home()
        if self.is_windows:
            paths = [
                os.path.join(self.volta_home, "bin", "volta.exe"),
                str(home / ".volta" / "bin" / "volta.exe"),
                str(home / "AppData" / "Local" / "Volta" / "bin" / "volta.exe"),
            ]
        else:
            paths = [
                os.path.join(self.volta_home, "bin", "volta"),
                str(home / ".volta" / "bin" / "volta"),
                "/usr/local/bin/volta",
                "/usr/bin/volta",
            ]
        return list(dict.fromkeys(paths))

    def get_install_dirs(self) -> List[str]:
        dirs = [self.volta_home]
        if self.is_windows:
            dirs.append(str(self.home() / "AppData" / "Local" / "Volta"))
        return dirs

    def _get_remote_fetcher(self) -> Optional[RemoteFetcher]:
        if self.remote_fetcher is None and self.config_manager is not None:
            self.remote_fetcher = RemoteFetcher(self.config_manager)
        return self.remote_fetcher

    def _list_installed(self) -> List[str]:
        return version_utils.parse_volta_list(
            self.run("list node --format plain", cwd=self._workspace_cwd())
        )

    def _query_current(self) -> Optional[str]:
        versions = version_utils.parse_volta_list(
            self.run("list --current --format plain", cwd=self._workspace_cwd())
        )
        return versions[0] if versions else None

    def _list_available(self) -> List[str]:
        fetcher = self._get_remote_fetcher()
        if fetcher is None:
            return []
        return fetcher.get_lts_versions(version_utils.MAX_AVAILABLE_VERSIONS)

    def _apply_version(self, version: str, result: SetVersionResult) -> None:
        if result.effective_scope == Scope.LOCAL:
            workspace = self._require_workspace()
            self.run(f"pin {self._arg('node@' + version)}", cwd=workspace)
            result.messages.append(f"已在 {os.path.join(workspace, 'package.json')} 固定 node@{version}")
        else:
            self.run(f"install {self._arg('node@' + version)}")

    def _install(self, version: str) -> None:
        self.run(f"install {self._arg('node@' + version)}")
