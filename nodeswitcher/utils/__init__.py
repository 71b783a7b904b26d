"""
NodeSwitcher 工具模块。

提供日志记录、权限检查和输入验证等工具功能。
"""

from .logger import get_logger, setup_logger
from .permission_manager import is_admin
from .input_validator import InputValidator, InputValidationError

__all__ = [
    "get_logger",
    "setup_logger",
    "is_admin",
    "InputValidator",
    "InputValidationError",
]
