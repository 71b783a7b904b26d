import ctypes
import os
import sys


def is_admin() -> bool:
    """
    检测当前进程是否具有管理员权限。

    Windows 上通过 shell32.IsUserAnAdmin 判断，其他平台判断是否为 root。

    Returns:
        bool: 如果具有管理员权限返回 True，否则返回 False
    """
    if sys.platform == "win32":
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0
