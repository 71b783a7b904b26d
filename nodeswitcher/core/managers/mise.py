"""
mise 适配器。

通过 --global 参数区分全局和项目级设置，项目级设置写入 .mise.toml。
"""

import os
from typing import Optional, List

from nodeswitcher.core.managers.base import BaseVersionManager
from nodeswitcher.core.models import Scope, PinArtifact, SetVersionResult
from nodeswitcher.core import version_utils


class MiseManager(BaseVersionManager):
    """mise 适配器。"""

    name = "mise"
    display_name = "mise"
    executable_names = ("mise",)
    pin_artifacts = (
        PinArtifact(".mise.toml", kind="mise_toml"),
        PinArtifact("mise.toml", kind="mise_toml"),
    )

    def get_known_paths(self) -> List[str]:
        home = self.home()
        if self.is_windows:
            return [
                str(home / "AppData" / "Local" / "Microsoft" / "WinGet" / "Links" / "mise.exe"),
                str(home / "AppData" / "Local" / "mise" / "mise.exe"),
                str(home / ".local" / "bin" / "mise.exe"),
                "C:\\Program Files\\mise\\mise.exe",
                "C:\\ProgramData\\chocolatey\\bin\\mise.exe",
            ]
        return [
            str(home / ".local" / "bin" / "mise"),
            "/usr/local/bin/mise",
            "/usr/bin/mise",
            "/opt/homebrew/bin/mise",
            "/home/linuxbrew/.linuxbrew/bin/mise",
        ]

    def get_install_dirs(self) -> List[str]:
        data_dir = os.environ.get("MISE_DATA_DIR") or str(self.home() / ".local" / "share" / "mise")
        return [data_dir]

    def _list_installed(self) -> List[str]:
        return version_utils.parse_mise_ls_json(self.run("ls node --json", cwd=self._workspace_cwd()))

    def _query_current(self) -> Optional[str]:
        return version_utils.parse_mise_current(self.run("current node", cwd=self._workspace_cwd()))

    def _list_available(self) -> List[str]:
        # mise 按升序输出，取最后的版本
        versions = version_utils.parse_remote_list(self.run("ls-remote node"))
        return version_utils.most_recent(versions)

    def _apply_version(self, version: str, result: SetVersionResult) -> None:
        if result.effective_scope == Scope.LOCAL:
            workspace = self._require_workspace()
            self.run(f"use {self._arg('node@' + version)}", cwd=workspace)
        else:
            self.run(f"use --global {self._arg('node@' + version)}")

    def _install(self, version: str) -> None:
        self.run(f"install {self._arg('node@' + version)}")
