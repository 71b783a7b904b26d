"""
核心数据模型。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class Scope(str, Enum):
    """版本设置的作用域。"""

    GLOBAL = "global"
    LOCAL = "local"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Scope"]:
        """
        从字符串解析作用域，大小写不敏感。

        参数:
            value: "global" / "local" 或 None

        返回:
            Scope 或 None

        抛出:
            ValueError: 无法识别的作用域
        """
        if value is None:
            return None
        if isinstance(value, Scope):
            return value
        return cls(value.strip().lower())


# 固定版本的来源
PIN_SOURCE_FILE = "pin_file"
PIN_SOURCE_PACKAGE_JSON = "package_json"
PIN_SOURCE_MISE_TOML = "mise_toml"


@dataclass(frozen=True)
class PinArtifact:
    """版本管理工具识别的固定文件。"""

    filename: str
    # 文件格式: "text"、"package_json" 或 "mise_toml"
    kind: str = "text"


@dataclass
class VersionPin:
    """从工作区找到的固定版本。"""

    path: str
    version: str
    source: str = PIN_SOURCE_FILE


@dataclass
class DetectionResult:
    """
    工具检测结果。

    tried 按探测顺序记录每个适配器的名称和是否可用，
    active 为选中的适配器名称，没有可用工具时为 None。
    """

    tried: List[Tuple[str, bool]] = field(default_factory=list)
    active: Optional[str] = None

    @property
    def available(self) -> List[str]:
        return [name for name, ok in self.tried if ok]


@dataclass
class SetVersionResult:
    """设置版本的结果，effective_scope 可能因工具限制而与请求的不同。"""

    version: str
    requested_scope: Scope
    effective_scope: Scope
    messages: List[str] = field(default_factory=list)

    @property
    def scope_coerced(self) -> bool:
        return self.requested_scope != self.effective_scope
