"""
输入验证模块。

提供用户输入的验证和 sanitization 功能。
版本号会被拼接进 shell 命令行，因此在交给版本管理工具之前必须经过这里的校验。
"""

import re
from typing import Optional, Dict, Any, Iterable

from nodeswitcher.utils.logger import get_logger

logger = get_logger()


class InputValidationError(Exception):
    """输入验证错误异常。"""
    pass


class InputValidator:
    """
    输入验证器类。

    提供用户输入的验证和 sanitization 功能。
    """

    TOOL_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')
    VERSION_PATTERN = re.compile(r'^[a-zA-Z0-9._/*+-]+$')
    URL_PATTERN = re.compile(
        r'^https?://'
        r'(?:[A-Z0-9](?:[A-Z0-9-]{0,61}[A-Z0-9])?\.)+'
        r'(?:[A-Z]{2,63}|[A-Z0-9-]{2,})'
        r'(?::\d+)?'
        r'(?:/?|[/?]\S+)$',
        re.IGNORECASE,
    )
    MAX_TOOL_NAME_LENGTH = 50
    MAX_PATH_LENGTH = 1024
    MAX_VERSION_LENGTH = 100

    @classmethod
    def validate_tool_name(cls, tool_name: str, known_tools: Optional[Iterable[str]] = None) -> bool:
        """
        验证工具名称的有效性。

        参数:
            tool_name: 工具名称
            known_tools: 可选的已知工具名称集合，提供时名称必须在其中

        返回:
            验证通过返回 True，否则抛出 InputValidationError
        """
        if not tool_name or not tool_name.strip():
            raise InputValidationError("工具名称不能为空")

        tool_name = tool_name.strip()

        if len(tool_name) > cls.MAX_TOOL_NAME_LENGTH:
            raise InputValidationError(f"工具名称不能超过 {cls.MAX_TOOL_NAME_LENGTH} 个字符")

        if not cls.TOOL_NAME_PATTERN.match(tool_name):
            raise InputValidationError("工具名称只能包含字母、数字、下划线和连字符")

        if known_tools is not None:
            known = list(known_tools)
            if tool_name.lower() not in known:
                raise InputValidationError(f"未知工具: {tool_name}（可用: {', '.join(known)}）")

        return True

    @classmethod
    def sanitize_tool_name(cls, tool_name: str) -> str:
        """
        sanitize 工具名称。

        参数:
            tool_name: 原始工具名称

        返回:
            sanitized 后的工具名称
        """
        if not tool_name:
            return ""
        return tool_name.strip().lower()

    @classmethod
    def validate_path(cls, path: Optional[str]) -> bool:
        """
        验证路径的有效性。

        参数:
            path: 路径字符串

        返回:
            验证通过返回 True，否则抛出 InputValidationError
        """
        if path is None:
            return True

        if len(path) > cls.MAX_PATH_LENGTH:
            raise InputValidationError(f"路径不能超过 {cls.MAX_PATH_LENGTH} 个字符")

        if '\n' in path or '\0' in path:
            raise InputValidationError("路径包含非法字符")

        return True

    @classmethod
    def validate_version_string(cls, version: str) -> bool:
        """
        验证版本号字符串的有效性。

        接受 20、v20.10.0、lts、lts/iron、lts/* 等形式。

        参数:
            version: 版本号字符串

        返回:
            验证通过返回 True，否则抛出 InputValidationError
        """
        if not version or not version.strip():
            raise InputValidationError("版本号不能为空")

        if len(version.strip()) > cls.MAX_VERSION_LENGTH:
            raise InputValidationError(f"版本号不能超过 {cls.MAX_VERSION_LENGTH} 个字符")

        if not cls.VERSION_PATTERN.match(version.strip()):
            raise InputValidationError(f"版本号格式无效: {version.strip()}")

        return True

    @classmethod
    def sanitize_version_string(cls, version: str) -> str:
        """
        sanitize 版本号字符串。

        参数:
            version: 原始版本号

        返回:
            sanitized 后的版本号
        """
        if not version:
            return ""
        return version.strip()

    @classmethod
    def validate_url(cls, url: str) -> bool:
        """
        验证 URL 的有效性。

        参数:
            url: URL 字符串

        返回:
            验证通过返回 True，否则抛出 InputValidationError
        """
        if not url or not url.strip():
            return True

        if not cls.URL_PATTERN.match(url.strip()):
            raise InputValidationError(f"URL 格式无效: {url.strip()}")

        return True

    @classmethod
    def validate_command_arg(cls, arg: Optional[str], max_length: int = 1024) -> bool:
        """
        验证命令参数的安全性，防止命令注入。

        参数:
            arg: 命令参数
            max_length: 最大长度

        返回:
            验证通过返回 True，否则抛出 InputValidationError
        """
        if arg is None:
            return True

        if len(arg) > max_length:
            raise InputValidationError("命令参数超过最大长度")

        dangerous_chars = [';', '|', '&', '>', '<', '`', '$', '\\', '"', "'", '\n']
        for char in dangerous_chars:
            if char in arg:
                raise InputValidationError(f"命令参数包含非法字符: {char!r}")

        return True

    @classmethod
    def safe_get_config_value(cls, config: Dict[str, Any], key: str, default: Any = None) -> Any:
        """
        安全地获取嵌套配置值，键使用点号分隔，避免 KeyError。

        参数:
            config: 配置字典
            key: 键名，例如 "settings.tool_paths.nvm"
            default: 默认值

        返回:
            配置值或默认值
        """
        value: Any = config
        for k in key.split('.'):
            if not isinstance(value, dict) or k not in value:
                return default
            value = value[k]
        return value
