"""
配置管理器模块。

提供应用程序配置的加载、保存和验证功能。
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Optional

from nodeswitcher.utils.logger import get_logger, get_app_dir
from nodeswitcher.core.interfaces import IConfigManager
from nodeswitcher.utils.input_validator import InputValidator, InputValidationError

logger = get_logger()

KNOWN_TOOLS = ("nvm", "nvm-windows", "fnm", "volta", "mise", "pnpm")

DEFAULT_NODE_INDEX_MIRRORS = [
    "https://nodejs.org/dist/",
    "https://npmmirror.com/mirrors/node/",
]


class ConfigValidationError(Exception):
    """配置验证错误异常。"""
    pass


class ConfigLoadError(Exception):
    """配置加载错误异常。"""
    pass


class ConfigSaveError(Exception):
    """配置保存错误异常。"""
    pass


def _atomic_save_json(file_path: Path, data: Any, indent: int = 2) -> None:
    """
    原子保存 JSON 数据到文件，防止写入中断导致文件损坏。

    参数:
        file_path: 目标文件路径
        data: 要保存的数据
        indent: JSON 缩进
    """
    temp_path = file_path.with_suffix(file_path.suffix + ".tmp")

    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent, ensure_ascii=False)
        os.replace(temp_path, file_path)
    except (IOError, OSError, TypeError, ValueError):
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                pass
        raise


class ConfigManager(IConfigManager):
    """
    配置管理器类。

    负责管理应用程序配置的加载、保存、验证和访问。
    实现 IConfigManager 抽象接口。

    配置目录优先使用构造参数，其次是 NODESWITCHER_HOME 环境变量，
    最后是用户主目录下的 .nodeswitcher。
    """

    REQUIRED_FIELDS = {
        "settings": dict,
    }

    SETTINGS_FIELDS = {
        "preferred_tool": str,
        "auto_apply_pin": bool,
        "pin_prompt_always": bool,
        "check_official_nodejs": bool,
        "command_timeout": (int, float),
        "cache_expire_time": int,
        "tool_paths": dict,
        "node_index_mirrors": list,
    }

    def __init__(self, config_dir: Optional[str] = None):
        """
        初始化配置管理器。

        参数:
            config_dir: 配置目录，None 表示使用默认位置
        """
        self.CONFIG_DIR = Path(config_dir) if config_dir else get_app_dir()
        self.CONFIG_FILE = self.CONFIG_DIR / "config.json"
        self.CACHE_FILE = self.CONFIG_DIR / "cache.json"
        self._config: dict[str, Any] = {}
        self._cache: dict[str, Any] = {}
        self._ensure_config_dir()

    def _ensure_config_dir(self) -> None:
        """确保配置目录存在。"""
        try:
            self.CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"无法创建配置目录 {self.CONFIG_DIR}: {e}")
            raise ConfigLoadError(f"无法创建配置目录 {self.CONFIG_DIR}: {e}") from e

    def get_default_config(self) -> dict[str, Any]:
        """
        获取内置默认配置。

        返回:
            默认配置字典
        """
        return {
            "settings": {
                "preferred_tool": "auto",
                "auto_apply_pin": True,
                "pin_prompt_always": False,
                "check_official_nodejs": True,
                "command_timeout": 0,
                "cache_expire_time": 86400,
                "tool_paths": {tool: "" for tool in KNOWN_TOOLS},
                "node_index_mirrors": list(DEFAULT_NODE_INDEX_MIRRORS),
            },
        }

    def load_config(self) -> dict[str, Any]:
        """
        加载配置文件。

        如果配置文件不存在，则创建默认配置文件；
        文件损坏或验证失败时使用默认配置。

        返回:
            配置字典
        """
        try:
            if not self.CONFIG_FILE.exists():
                logger.info(f"配置文件不存在，创建默认配置: {self.CONFIG_FILE}")
                self._config = self.get_default_config()
                self.save_config()
                self._load_cache()
                return self._config

            logger.debug(f"从文件加载配置: {self.CONFIG_FILE}")
            with open(self.CONFIG_FILE, "r", encoding="utf-8") as f:
                self._config = json.load(f)

            if not isinstance(self._config, dict):
                raise ConfigValidationError("配置文件根节点必须是对象")
            self._ensure_backward_compatibility()
            self.validate_config(self._config)
            self._load_cache()
            logger.debug("配置加载成功")
            return self._config
        except (IOError, OSError, json.JSONDecodeError) as e:
            logger.error(f"加载配置文件失败，使用默认配置: {e}")
            self._config = self.get_default_config()
            self._load_cache()
            return self._config
        except ConfigValidationError as e:
            logger.error(f"配置验证失败，使用默认配置: {e}")
            self._config = self.get_default_config()
            self._load_cache()
            return self._config

    def _ensure_backward_compatibility(self) -> None:
        """
        确保配置向后兼容，为旧版本配置添加新字段。
        """
        default_settings = self.get_default_config()["settings"]

        if not isinstance(self._config.get("settings"), dict):
            self._config["settings"] = {}

        settings = self._config["settings"]
        for field, value in default_settings.items():
            if field not in settings:
                settings[field] = value

        tool_paths = settings.get("tool_paths")
        if isinstance(tool_paths, dict):
            for tool in KNOWN_TOOLS:
                tool_paths.setdefault(tool, "")

    def _load_cache(self) -> None:
        """加载缓存文件。"""
        if self.CACHE_FILE.exists():
            try:
                with open(self.CACHE_FILE, "r", encoding="utf-8") as f:
                    self._cache = json.load(f)
            except (IOError, OSError, json.JSONDecodeError) as e:
                logger.warning(f"缓存文件损坏，已忽略: {e}")
                self._cache = {}
        else:
            self._cache = {}

    def save_config(self, config: dict[str, Any] | None = None) -> None:
        """
        保存配置到文件。

        参数:
            config: 要保存的配置字典，如果为 None 则保存当前配置
        """
        try:
            if config is not None:
                self._config = config

            self.validate_config(self._config)

            logger.debug(f"保存配置到 {self.CONFIG_FILE}")
            _atomic_save_json(self.CONFIG_FILE, self._config, indent=2)
            logger.debug("配置保存成功")
        except ConfigValidationError as e:
            logger.error(f"配置验证失败，无法保存: {e}")
            raise
        except (IOError, OSError, TypeError, ValueError) as e:
            logger.error(f"保存配置失败: {e}")
            raise ConfigSaveError(f"无法保存配置到 {self.CONFIG_FILE}: {e}") from e

    def save_cache(self, cache: dict[str, Any] | None = None) -> None:
        """
        保存缓存到文件。

        参数:
            cache: 要保存的缓存字典，如果为 None 则保存当前缓存
        """
        try:
            if cache is not None:
                self._cache = cache

            logger.debug(f"保存缓存到 {self.CACHE_FILE}")
            _atomic_save_json(self.CACHE_FILE, self._cache, indent=2)
        except (IOError, OSError, TypeError, ValueError) as e:
            logger.error(f"保存缓存失败: {e}")
            raise ConfigSaveError(f"无法保存缓存到 {self.CACHE_FILE}: {e}") from e

    def clear_cache(self) -> None:
        """
        清空缓存。
        """
        logger.info("清空缓存")
        self._cache = {}
        self.save_cache()

    def validate_config(self, config: dict[str, Any]) -> bool:
        """
        验证配置的有效性。

        参数:
            config: 要验证的配置字典

        返回:
            验证通过返回 True

        抛出:
            ConfigValidationError: 配置验证失败时抛出
        """
        for field, expected_type in self.REQUIRED_FIELDS.items():
            if field not in config:
                raise ConfigValidationError(f"缺少必需字段: {field}")
            if not isinstance(config[field], expected_type):
                raise ConfigValidationError(
                    f"字段 '{field}' 必须是 {expected_type.__name__} 类型，"
                    f"实际为 {type(config[field]).__name__}"
                )

        settings = config["settings"]
        for field, expected_type in self.SETTINGS_FIELDS.items():
            if field not in settings:
                raise ConfigValidationError(f"settings 中缺少必需字段: {field}")
            value = settings[field]
            # bool 是 int 的子类，数值字段不接受布尔值
            if expected_type is not bool and isinstance(value, bool):
                raise ConfigValidationError(f"字段 'settings.{field}' 不能是布尔值")
            if not isinstance(value, expected_type):
                type_name = getattr(expected_type, "__name__", "number")
                raise ConfigValidationError(
                    f"字段 'settings.{field}' 必须是 {type_name} 类型，"
                    f"实际为 {type(value).__name__}"
                )

        preferred = settings["preferred_tool"].strip().lower()
        if preferred != "auto":
            try:
                InputValidator.validate_tool_name(preferred, KNOWN_TOOLS)
            except InputValidationError as e:
                raise ConfigValidationError(f"settings.preferred_tool 无效: {e}") from e

        for url in settings["node_index_mirrors"]:
            try:
                InputValidator.validate_url(url)
            except InputValidationError as e:
                raise ConfigValidationError(f"settings.node_index_mirrors 无效: {e}") from e

        logger.debug("配置验证通过")
        return True

    @property
    def config(self) -> dict[str, Any]:
        """
        获取配置字典（延迟加载）。

        返回:
            配置字典
        """
        if not self._config:
            self.load_config()
        return self._config

    def get_config(self) -> dict[str, Any]:
        """
        获取配置字典。

        返回:
            配置字典
        """
        return self.config

    def get_settings(self) -> dict[str, Any]:
        """
        获取 settings 配置部分。

        返回:
            settings 配置字典
        """
        return self.config.get("settings", {})

    def get_setting(self, key: str, default: Any = None) -> Any:
        """
        获取设置项，支持点号分隔的嵌套键，例如 "tool_paths.fnm"。

        参数:
            key: 设置项键名
            default: 默认值

        返回:
            设置值或默认值
        """
        return InputValidator.safe_get_config_value(self.get_settings(), key, default)

    def set_setting(self, key: str, value: Any) -> None:
        """
        修改设置项并保存，验证失败时配置保持不变。

        参数:
            key: 设置项键名，支持点号分隔的嵌套键
            value: 新的值

        抛出:
            ConfigValidationError: 新值导致配置无效时抛出
            ConfigSaveError: 保存失败时抛出
        """
        new_config = copy.deepcopy(self.config)
        target = new_config["settings"]
        parts = key.split(".")
        for part in parts[:-1]:
            if not isinstance(target.get(part), dict):
                target[part] = {}
            target = target[part]
        target[parts[-1]] = value

        self.validate_config(new_config)
        self.save_config(new_config)
        logger.info(f"设置已更新: {key} = {value!r}")

    def get_preferred_tool(self) -> str:
        """
        获取首选的版本管理工具。

        返回:
            工具名称，未设置时返回 "auto"
        """
        value = self.get_settings().get("preferred_tool", "auto")
        return (value or "auto").strip().lower()

    def get_tool_path(self, tool: str) -> str:
        """
        获取用户为工具配置的可执行文件路径。

        参数:
            tool: 工具名称

        返回:
            路径，未配置时返回空字符串
        """
        return self.get_settings().get("tool_paths", {}).get(tool, "") or ""

    def set_tool_path(self, tool: str, path: str) -> bool:
        """
        设置工具的可执行文件路径。

        参数:
            tool: 工具名称
            path: 可执行文件路径，空字符串表示自动检测

        返回:
            成功返回 True
        """
        try:
            InputValidator.validate_tool_name(tool, KNOWN_TOOLS)
            if path:
                InputValidator.validate_path(path)
        except InputValidationError as e:
            logger.error(f"参数验证失败: {e}")
            return False

        self.set_setting(f"tool_paths.{tool}", path)
        return True

    def is_auto_apply_pin(self) -> bool:
        """是否在打开项目时自动应用固定版本。"""
        return bool(self.get_settings().get("auto_apply_pin", True))

    def get_command_timeout(self) -> Optional[float]:
        """
        获取外部命令超时时间（秒）。

        返回:
            超时时间，0 表示不限制，此时返回 None
        """
        timeout = self.get_settings().get("command_timeout", 0)
        return timeout if timeout and timeout > 0 else None

    def get_cache_expire_time(self) -> int:
        """
        获取缓存过期时间配置（秒）。

        返回:
            缓存过期时间（秒）
        """
        return self.get_settings().get("cache_expire_time", 86400)

    def get_node_index_mirrors(self) -> list[str]:
        """
        获取 Node.js 版本索引镜像列表。

        返回:
            镜像 URL 列表
        """
        mirrors = self.get_settings().get("node_index_mirrors") or []
        return [m for m in mirrors if m] or list(DEFAULT_NODE_INDEX_MIRRORS)

    def get_cache(self) -> dict[str, Any]:
        """
        获取缓存配置部分。

        返回:
            cache 配置字典
        """
        if not self._config:
            self.load_config()
        return self._cache

    def set_cache(self, key: str, value: Any) -> None:
        """
        设置缓存值。

        参数:
            key: 缓存键名
            value: 缓存值
        """
        self.get_cache()[key] = value

    def reset_to_default(self) -> dict[str, Any]:
        """
        重置配置为默认配置。

        返回:
            更新后的配置字典
        """
        self._config = self.get_default_config()
        self.save_config()
        return self._config
