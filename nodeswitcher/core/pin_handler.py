"""
固定版本文件处理模块。

在项目目录及其上级目录中查找 .nvmrc、.node-version、package.json（volta.node）
和 .mise.toml（[tools].node），并在当前版本不满足时询问用户是否切换。
"""

import json
import os
from typing import Optional, List, Sequence

try:
    import tomllib
except ImportError:
    import tomli as tomllib

from nodeswitcher.core.config_manager import ConfigManager
from nodeswitcher.core.interfaces import IUserPrompter
from nodeswitcher.core.managers import BaseVersionManager, VersionManagerError
from nodeswitcher.core.models import (
    Scope, PinArtifact, VersionPin,
    PIN_SOURCE_FILE, PIN_SOURCE_PACKAGE_JSON, PIN_SOURCE_MISE_TOML,
)
from nodeswitcher.core import version_utils
from nodeswitcher.utils.logger import get_logger

logger = get_logger()

CHOICE_YES = "是"
CHOICE_NO = "否"
CHOICE_ALWAYS = "总是"

# auto_apply 的结果
APPLY_DISABLED = "disabled"
APPLY_NO_MANAGER = "no_manager"
APPLY_NO_PIN = "no_pin"
APPLY_UNREADABLE = "unreadable"
APPLY_ALREADY_ACTIVE = "already_active"
APPLY_DECLINED = "declined"
APPLY_APPLIED = "applied"
APPLY_FAILED = "failed"

_SOURCES = {
    "text": PIN_SOURCE_FILE,
    "package_json": PIN_SOURCE_PACKAGE_JSON,
    "mise_toml": PIN_SOURCE_MISE_TOML,
}


def read_package_json_pin(path: str) -> Optional[str]:
    """读取 package.json 中的 volta.node 字段，不存在时返回 None。"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.debug(f"无法读取 {path}: {e}")
        return None
    volta = data.get("volta") if isinstance(data, dict) else None
    node = volta.get("node") if isinstance(volta, dict) else None
    if not isinstance(node, str):
        return None
    return version_utils.normalize_version(node) or None


def read_mise_toml_pin(path: str) -> Optional[str]:
    """读取 .mise.toml 中的 [tools].node，支持字符串、数组和 {version = ...} 形式。"""
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.debug(f"无法读取 {path}: {e}")
        return None
    tools = data.get("tools")
    if not isinstance(tools, dict):
        return None
    node = tools.get("node")
    if isinstance(node, list):
        node = node[0] if node else None
    if isinstance(node, dict):
        node = node.get("version")
    if not isinstance(node, (str, int, float)):
        return None
    return version_utils.normalize_version(str(node)) or None


def read_text_pin(path: str) -> Optional[str]:
    """读取纯文本固定文件。"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return version_utils.read_pin_text(f.read())
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"无法读取 {path}: {e}")
        return None


_READERS = {
    "text": read_text_pin,
    "package_json": read_package_json_pin,
    "mise_toml": read_mise_toml_pin,
}


class PinFileHandler:
    """
    固定版本文件处理器类。

    负责查找、读取固定版本，比较当前版本，并在确认后应用。
    """

    def __init__(
        self,
        manager: Optional[BaseVersionManager],
        config_manager: ConfigManager,
        prompter: Optional[IUserPrompter] = None,
    ):
        """
        初始化固定版本文件处理器。

        参数:
            manager: 当前使用的适配器
            config_manager: 配置管理器
            prompter: 用户交互接口
        """
        self.manager = manager
        self.config_manager = config_manager
        self.prompter = prompter

    def get_artifacts(self) -> Sequence[PinArtifact]:
        if self.manager is None:
            return ()
        return self.manager.get_pin_artifacts()

    def find_pin(self, start_dir: str) -> Optional[VersionPin]:
        """
        从起始目录向上查找固定版本文件，最近的上级目录优先，包括根目录。

        纯文本文件存在即视为命中；清单文件只有包含版本字段时才命中。

        参数:
            start_dir: 起始目录

        返回:
            VersionPin，没有找到时返回 None
        """
        artifacts = self.get_artifacts()
        if not artifacts:
            return None

        current = os.path.abspath(start_dir)
        while True:
            for artifact in artifacts:
                path = os.path.join(current, artifact.filename)
                if not os.path.isfile(path):
                    continue
                version = _READERS[artifact.kind](path)
                if artifact.kind != "text" and not version:
                    continue
                return VersionPin(path=path, version=version or "", source=_SOURCES[artifact.kind])

            parent = os.path.dirname(current)
            if parent == current:
                return None
            current = parent

    def read_pin(self, path: str, source: Optional[str] = None) -> Optional[str]:
        """
        读取固定版本文件中的版本。

        参数:
            path: 文件路径
            source: 来源标签，None 时根据文件名判断

        返回:
            规范化后的版本，读取失败返回 None
        """
        if source is None:
            name = os.path.basename(path)
            if name == "package.json":
                source = PIN_SOURCE_PACKAGE_JSON
            elif name in (".mise.toml", "mise.toml"):
                source = PIN_SOURCE_MISE_TOML
            else:
                source = PIN_SOURCE_FILE
        kind = {v: k for k, v in _SOURCES.items()}[source]
        return _READERS[kind](path)

    def is_version_matching(self, pinned: str, current: Optional[str] = None) -> bool:
        """
        判断当前版本是否满足固定版本。

        参数:
            pinned: 固定版本
            current: 当前版本，None 时向适配器查询

        返回:
            满足返回 True
        """
        if current is None and self.manager is not None:
            current = self.manager.get_current_version()
        return version_utils.is_version_matching(pinned, current)

    def _confirm(self, pin: VersionPin) -> bool:
        """询问用户是否切换，选择"总是"时保存配置。"""
        if self.config_manager.get_setting("pin_prompt_always", False):
            return True
        if self.prompter is None:
            return False

        filename = os.path.basename(pin.path)
        choice = self.prompter.ask(
            f"{filename} 指定了 Node.js {pin.version}，是否切换到该版本？",
            [CHOICE_YES, CHOICE_NO, CHOICE_ALWAYS],
        )
        if choice == CHOICE_ALWAYS:
            self.config_manager.set_setting("pin_prompt_always", True)
            return True
        return choice == CHOICE_YES

    def auto_apply(self, workspace_dir: str) -> str:
        """
        打开项目时自动应用固定版本。

        参数:
            workspace_dir: 项目目录

        返回:
            结果标识，见本模块的 APPLY_* 常量
        """
        if not self.config_manager.is_auto_apply_pin():
            logger.debug("固定版本自动应用已关闭")
            return APPLY_DISABLED
        if self.manager is None:
            return APPLY_NO_MANAGER

        pin = self.find_pin(workspace_dir)
        if pin is None:
            logger.debug(f"{workspace_dir} 中没有固定版本文件")
            return APPLY_NO_PIN
        if not pin.version:
            logger.warning(f"无法读取固定版本: {pin.path}")
            return APPLY_UNREADABLE

        if self.is_version_matching(pin.version):
            logger.info(f"固定版本 {pin.version} 已生效")
            return APPLY_ALREADY_ACTIVE

        if not self._confirm(pin):
            logger.info(f"用户拒绝切换到固定版本 {pin.version}")
            return APPLY_DECLINED

        try:
            result = self.manager.set_version(pin.version, Scope.LOCAL)
        except VersionManagerError as e:
            logger.error(f"应用固定版本失败: {e}")
            if self.prompter is not None:
                self.prompter.error(f"应用 {os.path.basename(pin.path)} 失败: {e}")
            return APPLY_FAILED

        if self.prompter is not None:
            for message in result.messages:
                self.prompter.info(message)
            self.prompter.info(f"已根据 {os.path.basename(pin.path)} 切换到 Node.js {pin.version}")
        return APPLY_APPLIED

    def get_watch_patterns(self) -> List[str]:
        """获取需要监视的文件模式。"""
        return [f"**/{artifact.filename}" for artifact in self.get_artifacts()]

    def get_watch_filenames(self) -> List[str]:
        return [artifact.filename for artifact in self.get_artifacts()]

    def should_reevaluate(self, path: str) -> bool:
        """
        判断文件变化是否需要重新评估固定版本。

        清单文件只有包含版本字段时才触发，避免无关修改引起切换。

        参数:
            path: 发生变化的文件

        返回:
            需要重新评估返回 True
        """
        name = os.path.basename(path)
        for artifact in self.get_artifacts():
            if artifact.filename != name:
                continue
            if artifact.kind == "text":
                return os.path.isfile(path)
            return _READERS[artifact.kind](path) is not None
        return False
