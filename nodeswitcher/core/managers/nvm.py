"""
nvm（Unix）适配器。

nvm 是一个 shell 函数，每次调用前都需要在 bash 中先 source nvm.sh。
"""

import os
import shlex
from typing import Optional, List

from nodeswitcher.core.managers.base import BaseVersionManager
from nodeswitcher.core.models import Scope, PinArtifact, SetVersionResult
from nodeswitcher.core import version_utils


class NvmManager(BaseVersionManager):
    """nvm 适配器，项目级设置通过 .nvmrc 实现。"""

    name = "nvm"
    display_name = "nvm"
    pin_artifacts = (PinArtifact(".nvmrc"),)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.nvm_dir = os.environ.get("NVM_DIR") or str(self.home() / ".nvm")

    def get_known_paths(self) -> List[str]:
        home = self.home()
        paths = [
            os.path.join(self.nvm_dir, "nvm.sh"),
            str(home / ".nvm" / "nvm.sh"),
            "/usr/local/opt/nvm/nvm.sh",
            "/opt/homebrew/opt/nvm/nvm.sh",
            str(home / ".config" / "nvm" / "nvm.sh"),
        ]
        return list(dict.fromkeys(paths))

    def get_install_dirs(self) -> List[str]:
        return [self.nvm_dir]

    def detect(self) -> bool:
        if self.is_windows:
            return False
        return super().detect()

    def _build_command(self, path: str) -> str:
        # Homebrew 安装的 nvm.sh 与数据目录分离，数据目录保持默认值
        if "/opt/nvm/" not in path and not os.environ.get("NVM_DIR"):
            self.nvm_dir = os.path.dirname(path)
        return path

    def run(self, args: str, cwd: Optional[str] = None) -> str:
        inner = f"source {shlex.quote(self.command)} && nvm {args}"
        command = f"bash -c {shlex.quote(inner)}"
        stdout, _ = self.executor.run(command, cwd=cwd, env={"NVM_DIR": self.nvm_dir})
        return stdout

    def _list_installed(self) -> List[str]:
        return version_utils.parse_marked_list(self.run("list"))

    def _query_current(self) -> Optional[str]:
        return version_utils.parse_nvm_current(self.run("current"))

    def _list_available(self) -> List[str]:
        versions = version_utils.parse_remote_list(self.run("ls-remote --lts"))
        return version_utils.most_recent(versions)

    def _apply_version(self, version: str, result: SetVersionResult) -> None:
        if result.effective_scope == Scope.LOCAL:
            workspace = self._require_workspace()
            self._write_pin_file(workspace, ".nvmrc", version)
            self.run("use", cwd=workspace)
            result.messages.append(f"已在 {workspace} 写入 .nvmrc")
        else:
            self.run(f"use {self._arg(version)}")
            self.run(f"alias default {self._arg(version)}")

    def _install(self, version: str) -> None:
        self.run(f"install {self._arg(version)}")
