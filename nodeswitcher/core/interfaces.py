"""
核心模块抽象接口定义。

定义 ConfigManager、VersionManager、RemoteFetcher 以及用户交互的抽象接口。
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any, Sequence

from nodeswitcher.core.models import Scope, PinArtifact, SetVersionResult


class IConfigManager(ABC):
    """配置管理器抽象接口。"""

    @abstractmethod
    def get_config(self) -> dict[str, Any]:
        """获取配置字典。"""
        pass

    @abstractmethod
    def save_config(self, config: dict[str, Any] | None = None) -> None:
        """保存配置到文件。"""
        pass

    @abstractmethod
    def get_settings(self) -> dict[str, Any]:
        """获取 settings 配置部分。"""
        pass

    @abstractmethod
    def get_setting(self, key: str, default: Any = None) -> Any:
        """获取单个设置项。"""
        pass

    @abstractmethod
    def set_setting(self, key: str, value: Any) -> None:
        """设置单个设置项并保存。"""
        pass

    @abstractmethod
    def get_preferred_tool(self) -> str:
        """获取首选的版本管理工具。"""
        pass

    @abstractmethod
    def get_tool_path(self, tool: str) -> str:
        """获取用户为工具配置的可执行文件路径。"""
        pass

    @abstractmethod
    def get_cache_expire_time(self) -> int:
        """获取缓存过期时间配置。"""
        pass

    @abstractmethod
    def get_node_index_mirrors(self) -> list[str]:
        """获取 Node.js 版本索引镜像列表。"""
        pass

    @abstractmethod
    def get_cache(self) -> dict[str, Any]:
        """获取缓存配置部分。"""
        pass

    @abstractmethod
    def set_cache(self, key: str, value: Any) -> None:
        """设置缓存值。"""
        pass

    @abstractmethod
    def save_cache(self, cache: dict[str, Any] | None = None) -> None:
        """保存缓存到文件。"""
        pass

    @abstractmethod
    def reset_to_default(self) -> dict[str, Any]:
        """重置配置为默认配置。"""
        pass


class IVersionManager(ABC):
    """Node.js 版本管理工具适配器抽象接口。"""

    name: str = ""

    @abstractmethod
    def detect(self) -> bool:
        """检测工具是否已安装。"""
        pass

    @abstractmethod
    def get_installed_versions(self) -> List[str]:
        """列出已安装的 Node.js 版本。"""
        pass

    @abstractmethod
    def get_current_version(self) -> Optional[str]:
        """获取当前生效的 Node.js 版本。"""
        pass

    @abstractmethod
    def set_version(self, version: str, scope: Scope) -> SetVersionResult:
        """设置全局或项目级的 Node.js 版本。"""
        pass

    @abstractmethod
    def install_version(self, version: str) -> None:
        """安装指定的 Node.js 版本。"""
        pass

    @abstractmethod
    def get_available_versions(self) -> List[str]:
        """列出可安装的远程版本。"""
        pass

    @abstractmethod
    def get_pin_artifacts(self) -> Sequence[PinArtifact]:
        """获取工具识别的固定文件。"""
        pass

    @abstractmethod
    def supports_scope(self) -> bool:
        """工具是否区分全局和项目级作用域。"""
        pass

    @abstractmethod
    def get_config_file_name(self) -> Optional[str]:
        """获取工具的固定文件名，没有时返回 None。"""
        pass

    @abstractmethod
    def get_display_name(self) -> str:
        """获取显示名称。"""
        pass


class IUserPrompter(ABC):
    """用户交互抽象接口，CLI 和托盘界面各有实现。"""

    @abstractmethod
    def ask(self, message: str, choices: Sequence[str]) -> Optional[str]:
        """让用户从选项中选择一个，取消时返回 None。"""
        pass

    @abstractmethod
    def ask_text(self, message: str) -> Optional[str]:
        """让用户输入文本，取消时返回 None。"""
        pass

    @abstractmethod
    def info(self, message: str) -> None:
        """显示提示信息。"""
        pass

    @abstractmethod
    def warn(self, message: str) -> None:
        """显示警告信息。"""
        pass

    @abstractmethod
    def error(self, message: str) -> None:
        """显示错误信息。"""
        pass


class IRemoteFetcher(ABC):
    """远程版本获取器抽象接口。"""

    @abstractmethod
    def get_mirror_list(self) -> List[str]:
        """获取版本索引的镜像源列表。"""
        pass

    @abstractmethod
    def get_remote_versions(self, use_cache: bool = True) -> List[Dict[str, Any]]:
        """获取远程可用的 Node.js 版本。"""
        pass

    @abstractmethod
    def get_lts_versions(self, limit: int = 20, use_cache: bool = True) -> List[str]:
        """获取最新的 LTS 版本号。"""
        pass
