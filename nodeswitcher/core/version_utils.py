"""
版本工具模块。

提供版本号规范化、比较、排序，以及各版本管理工具命令输出的解析函数。
所有解析函数都是纯函数：输入原始文本，输出规范化后的版本列表，
无法识别的行直接丢弃，不会抛出异常。
"""

import json
import re
from typing import List, Dict, Any, Optional, Iterable

MAX_AVAILABLE_VERSIONS = 20

VERSION_PATTERN = re.compile(r'^\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.-]+)?$')
_VERSION_SEARCH = re.compile(r'v?(\d+\.\d+\.\d+)')
_VOLTA_NODE = re.compile(r'node@v?(\d+\.\d+\.\d+)')
_ANSI_ESCAPE = re.compile(r'\x1b\[[0-9;]*[A-Za-z]')
_LEADING_V = re.compile(r'^[\sv]+')


def normalize_version(version: Optional[str]) -> str:
    """
    规范化版本字符串：去除首尾空白和前导 v。

    重复调用结果不变，即 normalize(normalize(x)) == normalize(x)。

    参数:
        version: 原始版本字符串

    返回:
        规范化后的版本字符串
    """
    if not version:
        return ""
    return _LEADING_V.sub("", version).strip()


def is_valid_version(token: str) -> bool:
    """判断是否为 MAJOR.MINOR.PATCH 形式的完整版本号。"""
    return bool(token) and bool(VERSION_PATTERN.match(token))


def is_version_matching(pinned: Optional[str], current: Optional[str]) -> bool:
    """
    判断当前版本是否满足固定版本。

    使用按点分段的前缀匹配："20" 被 "20.10.0" 满足，"20.11" 不被满足，
    "2" 也不会被 "20.10.0" 满足。

    参数:
        pinned: 固定文件中的版本
        current: 当前使用的版本

    返回:
        满足返回 True
    """
    pinned = normalize_version(pinned)
    current = normalize_version(current)
    if not pinned or not current:
        return False
    return current == pinned or current.startswith(pinned + ".")


def _parse_version(version_str: str) -> tuple:
    """
    解析版本字符串为可比较的元组。

    参数:
        version_str: 版本字符串

    返回:
        版本元组 (major, minor, patch, ...)
    """
    parts = re.findall(r'\d+', version_str)
    return tuple(int(p) for p in parts) if parts else (0,)


def sort_versions_desc(versions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    按版本号降序排列版本信息列表。

    参数:
        versions: 版本信息列表，每个元素包含 version 字段

    返回:
        排序后的版本列表
    """
    return sorted(
        versions,
        key=lambda v: _parse_version(v.get("version", "0")),
        reverse=True
    )


def sort_version_strings_desc(versions: Iterable[str]) -> List[str]:
    """按版本号降序排列版本字符串。"""
    return sorted(versions, key=_parse_version, reverse=True)


def unique(versions: Iterable[str]) -> List[str]:
    """去重并保持原有顺序。"""
    seen = set()
    result = []
    for v in versions:
        if v not in seen:
            seen.add(v)
            result.append(v)
    return result


def most_recent(versions: Iterable[str], limit: int = MAX_AVAILABLE_VERSIONS) -> List[str]:
    """
    取最新的若干个版本（降序）。

    参数:
        versions: 版本字符串
        limit: 最多返回的数量

    返回:
        最新的版本列表
    """
    return sort_version_strings_desc(unique(versions))[:limit]


def _split_marker(line: str) -> tuple:
    """
    去除行首的 "->" / "*" 标记和 ANSI 颜色码。

    返回:
        (marker, rest) 元组，marker 为 "->"、"*" 或 ""
    """
    text = _ANSI_ESCAPE.sub("", line).strip()
    for marker in ("->", "*"):
        if text.startswith(marker):
            return marker, text[len(marker):].strip()
    return "", text


def _parse_marked_line(line: str) -> Optional[tuple]:
    """解析单行列表输出，返回 (marker, version, rest)，无法识别时返回 None。"""
    marker, text = _split_marker(line)
    if not text:
        return None
    parts = text.split(None, 1)
    version = normalize_version(parts[0])
    if not is_valid_version(version):
        return None
    rest = parts[1] if len(parts) > 1 else ""
    return marker, version, rest


def parse_marked_list(output: str) -> List[str]:
    """
    解析带标记的已安装版本列表。

    适用于 nvm list、nvm-windows list、fnm list、pnpm env list 等输出，例如:

        * v20.10.0 default
          v18.19.0
        ->     v16.20.2
        default -> 20 (-> v20.10.0)

    别名行（default、lts/*、system 等）的首个词不是版本号，会被丢弃。

    参数:
        output: 命令输出

    返回:
        去重后的规范化版本列表
    """
    versions = []
    for line in (output or "").splitlines():
        parsed = _parse_marked_line(line)
        if parsed:
            versions.append(parsed[1])
    return unique(versions)


def parse_current_from_list(output: str) -> Optional[str]:
    """
    从带标记的列表输出中找出当前版本。

    优先级：
    1. "->" 标记的行（nvm）
    2. 只有部分行带 "*" 时，第一个 "*" 行（nvm-windows、pnpm）
    3. 带 default 标签的行（fnm 每行都带 "*"）

    参数:
        output: 命令输出

    返回:
        当前版本，无法判断时返回 None
    """
    entries = [p for p in (_parse_marked_line(line) for line in (output or "").splitlines()) if p]
    if not entries:
        return None

    for marker, version, _ in entries:
        if marker == "->":
            return version

    starred = [version for marker, version, _ in entries if marker == "*"]
    if starred and len(starred) < len(entries):
        return starred[0]

    for _, version, rest in entries:
        if "default" in rest.split():
            return version
    return None


def parse_version_query(output: str) -> Optional[str]:
    """
    从任意文本中提取第一个版本号。

    用于 `node --version`、`nvm current`（nvm-windows）等输出。

    参数:
        output: 命令输出

    返回:
        版本号，未找到返回 None
    """
    match = _VERSION_SEARCH.search(_ANSI_ESCAPE.sub("", output or ""))
    return match.group(1) if match else None


def parse_nvm_current(output: str) -> Optional[str]:
    """
    解析 `nvm current` 输出，none 和 system 视为未设置。

    参数:
        output: 命令输出

    返回:
        当前版本，未设置返回 None
    """
    version = normalize_version(_ANSI_ESCAPE.sub("", output or ""))
    if version in ("", "none", "system"):
        return None
    return version if is_valid_version(version) else None


def parse_nvm_windows_available(output: str) -> List[str]:
    """
    解析 `nvm list available`（nvm-windows）的表格输出，只取 LTS 列。

    输出示例:

        |   CURRENT    |     LTS      |  OLD STABLE  | OLD UNSTABLE |
        |--------------|--------------|--------------|--------------|
        |    21.5.0    |   20.10.0    |   0.12.18    |   0.11.16    |

    参数:
        output: 命令输出

    返回:
        LTS 版本列表，保持表格中的顺序（最新在前）
    """
    lts_index = 1
    versions = []
    for line in (output or "").splitlines():
        line = line.strip()
        if "|" not in line:
            continue
        cells = [c.strip() for c in line.strip("|").split("|")]
        upper = [c.upper() for c in cells]
        if "LTS" in upper:
            lts_index = upper.index("LTS")
            continue
        if len(cells) <= lts_index:
            continue
        version = normalize_version(cells[lts_index])
        if is_valid_version(version):
            versions.append(version)
    return unique(versions)


def parse_volta_list(output: str) -> List[str]:
    """
    解析 `volta list ... --format plain` 输出中的 Node 运行时版本。

    输出示例:

        runtime node@20.10.0 (default)
        runtime node@18.19.0
        package typescript@5.3.3 / tsc / node@20.10.0 npm@built-in (default)

    package 行中的 node@ 是包使用的平台，不是已安装的运行时，会被跳过。

    参数:
        output: 命令输出

    返回:
        去重后的版本列表
    """
    versions = []
    for line in (output or "").splitlines():
        line = line.strip()
        if not line or line.startswith("package"):
            continue
        match = _VOLTA_NODE.search(line)
        if match:
            versions.append(match.group(1))
    return unique(versions)


def parse_mise_ls_json(output: str) -> List[str]:
    """
    解析 `mise ls node --json` 输出。

    同时兼容数组形式和 {"node": [...]} 形式。

    参数:
        output: 命令输出

    返回:
        去重后的版本列表，JSON 无效时返回空列表
    """
    try:
        data = json.loads(output or "")
    except (json.JSONDecodeError, TypeError):
        return []

    if isinstance(data, dict):
        data = data.get("node", [])
    if not isinstance(data, list):
        return []

    versions = []
    for item in data:
        if not isinstance(item, dict):
            continue
        version = normalize_version(str(item.get("version", "")))
        if is_valid_version(version):
            versions.append(version)
    return unique(versions)


def parse_mise_current(output: str) -> Optional[str]:
    """
    解析 `mise current node` 输出，可能包含多个以空格分隔的版本，取第一个。

    参数:
        output: 命令输出

    返回:
        当前版本，未设置返回 None
    """
    for token in (output or "").split():
        version = normalize_version(token)
        if is_valid_version(version):
            return version
    return None


def parse_remote_list(output: str) -> List[str]:
    """
    解析远程版本列表输出。

    适用于 nvm ls-remote、fnm list-remote、mise ls-remote、pnpm env list --remote，
    行格式如 "v20.10.0   (LTS: Iron)"、"->  v20.10.0"、"20.10.0"。

    参数:
        output: 命令输出

    返回:
        去重后的版本列表，保持原顺序
    """
    return parse_marked_list(output)


def read_pin_text(content: str) -> Optional[str]:
    """
    读取纯文本固定文件（.nvmrc、.node-version）的内容。

    取第一个非空且不以 # 开头的行，去掉行内注释和前导 v。
    支持 20、v20、20.10.0、lts/iron 等格式。

    参数:
        content: 文件内容

    返回:
        规范化后的版本，没有有效内容时返回 None
    """
    for line in (content or "").splitlines():
        line = line.split("#", 1)[0].strip()
        if line:
            return normalize_version(line) or None
    return None
