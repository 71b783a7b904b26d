"""
fnm（Fast Node Manager）适配器。

切换版本通过在项目目录写入 .node-version 实现，只支持项目级设置；
配合 fnm 的 --use-on-cd 在新终端中生效。
"""

import os
import re
from typing import Optional, List

from nodeswitcher.core.managers.base import BaseVersionManager
from nodeswitcher.core.models import Scope, PinArtifact, SetVersionResult
from nodeswitcher.core.process_executor import ExecutionError
from nodeswitcher.core import version_utils
from nodeswitcher.utils.logger import get_logger

logger = get_logger()

_ALIAS_TARGET = re.compile(r'v?(\d+\.\d+\.\d+)')


class FnmManager(BaseVersionManager):
    """fnm 适配器。"""

    name = "fnm"
    display_name = "fnm"
    executable_names = ("fnm",)
    forced_scope = Scope.LOCAL
    pin_artifacts = (PinArtifact(".node-version"),)

    def get_known_paths(self) -> List[str]:
        home = self.home()
        if self.is_windows:
            local_app_data = os.environ.get("LOCALAPPDATA") or str(home / "AppData" / "Local")
            paths = [
                os.path.join(local_app_data, "fnm", "fnm.exe"),
                str(home / ".fnm" / "bin" / "fnm.exe"),
                str(home / ".local" / "share" / "fnm" / "fnm.exe"),
            ]
        else:
            xdg_data_home = os.environ.get("XDG_DATA_HOME") or str(home / ".local" / "share")
            paths = [
                os.path.join(xdg_data_home, "fnm", "fnm"),
                str(home / ".fnm" / "bin" / "fnm"),
                str(home / ".local" / "share" / "fnm" / "fnm"),
                str(home / "Library" / "Application Support" / "fnm" / "fnm"),
                "/usr/local/bin/fnm",
                "/usr/bin/fnm",
            ]
        return list(dict.fromkeys(paths))

    def get_fnm_dir(self) -> str:
        """获取 fnm 的数据目录。"""
        fnm_dir = os.environ.get("FNM_DIR")
        if fnm_dir:
            return fnm_dir
        home = self.home()
        if self.is_windows:
            local_app_data = os.environ.get("LOCALAPPDATA") or str(home / "AppData" / "Local")
            multishells = os.path.join(local_app_data, "fnm_multishells")
            if os.path.isdir(multishells):
                return multishells
            return str(home / ".local" / "share" / "fnm")
        xdg_data_home = os.environ.get("XDG_DATA_HOME") or str(home / ".local" / "share")
        return os.path.join(xdg_data_home, "fnm")

    def get_install_dirs(self) -> List[str]:
        home = self.home()
        dirs = [self.get_fnm_dir(), str(home / ".fnm"), str(home / ".local" / "state" / "fnm_multishells")]
        if self.is_windows:
            local_app_data = os.environ.get("LOCALAPPDATA") or str(home / "AppData" / "Local")
            dirs.append(os.path.join(local_app_data, "fnm_multishells"))
        return list(dict.fromkeys(dirs))

    def _list_installed(self) -> List[str]:
        return version_utils.parse_marked_list(self.run("list", cwd=self._workspace_cwd()))

    def _read_default_alias(self) -> Optional[str]:
        """读取 fnm 的 default 别名，它可能是符号链接也可能是文本文件。"""
        alias_path = os.path.join(self.get_fnm_dir(), "aliases", "default")
        if os.path.islink(alias_path):
            match = _ALIAS_TARGET.search(os.readlink(alias_path))
            return match.group(1) if match else None
        if os.path.isfile(alias_path):
            with open(alias_path, "r", encoding="utf-8") as f:
                version = version_utils.read_pin_text(f.read())
            if version and version_utils.is_valid_version(version):
                return version
        return None

    def _query_current(self) -> Optional[str]:
        cwd = self._workspace_cwd()
        try:
            version = version_utils.normalize_version(self.run("current", cwd=cwd))
            if version_utils.is_valid_version(version):
                return version
        except ExecutionError as e:
            logger.debug(f"fnm current 失败: {e}")

        if cwd:
            pin_path = os.path.join(cwd, ".node-version")
            if os.path.isfile(pin_path):
                with open(pin_path, "r", encoding="utf-8") as f:
                    version = version_utils.read_pin_text(f.read())
                if version and version_utils.is_valid_version(version):
                    return version

        version = self._read_default_alias()
        if version:
            return version

        return version_utils.parse_current_from_list(self.run("list", cwd=cwd))

    def _list_available(self) -> List[str]:
        versions = version_utils.parse_remote_list(self.run("list-remote --lts", cwd=self._workspace_cwd()))
        return version_utils.most_recent(versions)

    def _apply_version(self, version: str, result: SetVersionResult) -> None:
        workspace = self._require_workspace()
        if self._ensure_installed(version):
            result.messages.append(f"fnm 已安装 Node.js {version}")
        self._write_pin_file(workspace, ".node-version", version)
        result.messages.append(
            f"已在 {workspace} 写入 .node-version，请在新终端中使用（需要开启 fnm 的 --use-on-cd）"
        )

    def _install(self, version: str) -> None:
        self.run(f"install {self._arg(version)}", cwd=self._workspace_cwd())
