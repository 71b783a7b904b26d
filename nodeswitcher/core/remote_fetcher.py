"""
远程版本获取模块。

从 Node.js 官方发布索引（index.json）获取可安装的版本列表，
用于自身没有远程列表命令的版本管理工具。
"""

from datetime import datetime
from typing import Optional, List, Dict, Any

import requests

from nodeswitcher.utils.logger import get_logger
from nodeswitcher.core.config_manager import ConfigManager, ConfigSaveError
from nodeswitcher.core.interfaces import IRemoteFetcher
from nodeswitcher.core import version_utils

logger = get_logger()

INDEX_FILE = "index.json"
CACHE_KEY = "node_versions"
REQUEST_TIMEOUT = 10


class RemoteFetcherError(Exception):
    """远程获取错误异常。"""
    pass


class NetworkError(RemoteFetcherError):
    """网络错误异常。"""
    pass


class MirrorError(RemoteFetcherError):
    """镜像源错误异常。"""
    pass


class MirrorStatus:
    """
    镜像源状态跟踪类。

    记录镜像源的可用状态、失败时间和原因。
    """

    def __init__(self):
        self._status: dict[str, dict[str, Any]] = {}

    def record_success(self, mirror_url: str) -> None:
        """
        记录镜像源成功。

        参数:
            mirror_url: 镜像源 URL
        """
        self._status[mirror_url] = {
            "last_success": datetime.now(),
            "last_failure": None,
            "failure_reason": None,
            "consecutive_failures": 0
        }

    def record_failure(self, mirror_url: str, reason: str) -> None:
        """
        记录镜像源失败。

        参数:
            mirror_url: 镜像源 URL
            reason: 失败原因
        """
        current = self._status.get(mirror_url, {
            "last_success": None,
            "last_failure": None,
            "failure_reason": None,
            "consecutive_failures": 0
        })
        current["last_failure"] = datetime.now()
        current["failure_reason"] = reason
        current["consecutive_failures"] = current.get("consecutive_failures", 0) + 1
        self._status[mirror_url] = current

    def get_sorted_mirrors(self, mirror_list: List[str]) -> List[str]:
        """
        获取按优先级排序的镜像源列表，优先使用最近成功的镜像源。

        参数:
            mirror_list: 原始镜像源列表

        返回:
            排序后的镜像源列表
        """
        def get_priority(mirror_url: str) -> tuple:
            status = self._status.get(mirror_url, {})
            last_success = status.get("last_success")
            consecutive_failures = status.get("consecutive_failures", 0)

            if last_success is None:
                return (1, consecutive_failures, 0)

            return (0, consecutive_failures, -last_success.timestamp())

        return sorted(mirror_list, key=get_priority)

    def get_failure_summary(self) -> str:
        """
        获取失败摘要信息。

        返回:
            失败摘要字符串
        """
        summaries = []
        for mirror_url, status in self._status.items():
            if status.get("last_failure"):
                summaries.append(
                    f"{mirror_url}: {status.get('failure_reason', '未知错误')} "
                    f"(连续失败 {status.get('consecutive_failures', 0)} 次)"
                )
        return "; ".join(summaries) if summaries else "无失败记录"


def parse_node_index(data: Any) -> List[Dict[str, Any]]:
    """
    解析 Node.js 发布索引。

    参数:
        data: index.json 反序列化后的数据

    返回:
        版本信息列表，每项包含 version、lts、release_date
    """
    versions = []
    if not isinstance(data, list):
        return versions

    for item in data:
        if not isinstance(item, dict):
            continue
        version = version_utils.normalize_version(str(item.get("version", "")))
        if not version_utils.is_valid_version(version):
            continue
        lts = item.get("lts", False)
        versions.append({
            "version": version,
            # lts 字段为 false 或 LTS 代号字符串
            "lts": bool(lts),
            "lts_name": lts if isinstance(lts, str) else None,
            "release_date": item.get("date"),
        })
    return versions


class RemoteFetcher(IRemoteFetcher):
    """
    远程版本获取器类。

    依次尝试配置的镜像源，结果同时缓存在内存和 cache.json 中。
    实现 IRemoteFetcher 抽象接口。
    """

    def __init__(self, config_manager: ConfigManager):
        """
        初始化远程版本获取器。

        参数:
            config_manager: 配置管理器实例
        """
        self.config_manager = config_manager
        self._memory_cache: dict[str, dict[str, Any]] = {}
        self.mirror_status = MirrorStatus()

    def get_mirror_list(self) -> List[str]:
        """
        获取版本索引的镜像源列表。

        返回:
            镜像源 URL 列表
        """
        return self.config_manager.get_node_index_mirrors()

    def _get_cached(self, cache: Dict[str, Any], ignore_expire: bool = False) -> Optional[List[Dict[str, Any]]]:
        """从缓存字典中读取未过期的版本列表。"""
        cached = cache.get(CACHE_KEY)
        if not isinstance(cached, dict):
            return None
        if not ignore_expire:
            try:
                last_update = datetime.fromisoformat(cached.get("last_update", "2000-01-01"))
            except ValueError:
                return None
            age = (datetime.now() - last_update).total_seconds()
            if age >= self.config_manager.get_cache_expire_time():
                return None
        return cached.get("versions", [])

    def get_remote_versions(self, use_cache: bool = True) -> List[Dict[str, Any]]:
        """
        获取远程可用的 Node.js 版本。

        参数:
            use_cache: 是否使用缓存

        返回:
            版本信息列表（降序），全部镜像失败且没有缓存时返回空列表
        """
        if use_cache:
            cached = self._get_cached(self._memory_cache)
            if cached is not None:
                logger.debug("使用内存缓存的 Node.js 版本信息")
                return cached

            cache = self.config_manager.get_cache()
            cached = self._get_cached(cache)
            if cached is not None:
                logger.debug("使用本地缓存的 Node.js 版本信息")
                self._memory_cache[CACHE_KEY] = cache[CACHE_KEY]
                return cached

        mirror_list = self.get_mirror_list()
        for mirror_url in self.mirror_status.get_sorted_mirrors(mirror_list):
            try:
                logger.info(f"尝试从镜像源获取 Node.js 版本: {mirror_url}")
                versions = self._fetch_versions_from_mirror(mirror_url)
            except RemoteFetcherError as e:
                logger.warning(f"从镜像源 {mirror_url} 获取 Node.js 版本失败: {e}")
                self.mirror_status.record_failure(mirror_url, str(e))
                continue

            if not versions:
                logger.warning(f"镜像源 {mirror_url} 返回空版本列表")
                self.mirror_status.record_failure(mirror_url, "镜像源返回空版本列表")
                continue

            self.mirror_status.record_success(mirror_url)
            versions = version_utils.sort_versions_desc(versions)
            self._update_cache(versions)
            logger.info(f"成功从镜像源 {mirror_url} 获取 {len(versions)} 个 Node.js 版本")
            return versions

        logger.error(f"所有镜像源获取 Node.js 版本失败。失败详情: {self.mirror_status.get_failure_summary()}")

        stale = self._get_cached(self.config_manager.get_cache(), ignore_expire=True)
        if stale:
            logger.info("网络错误，使用过期缓存的 Node.js 版本信息")
            return stale
        return []

    def get_lts_versions(self, limit: int = version_utils.MAX_AVAILABLE_VERSIONS,
                         use_cache: bool = True) -> List[str]:
        """
        获取最新的 LTS 版本号。

        参数:
            limit: 最多返回的数量
            use_cache: 是否使用缓存

        返回:
            LTS 版本号列表（降序）
        """
        versions = [v["version"] for v in self.get_remote_versions(use_cache) if v.get("lts")]
        return version_utils.most_recent(versions, limit)

    def _fetch_versions_from_mirror(self, mirror_url: str) -> List[Dict[str, Any]]:
        """
        从单个镜像源下载并解析 index.json。

        参数:
            mirror_url: 镜像源 URL

        返回:
            版本信息列表

        抛出:
            NetworkError: 请求失败时抛出
            MirrorError: 响应内容无效时抛出
        """
        index_url = mirror_url.rstrip("/") + "/" + INDEX_FILE
        logger.debug(f"获取索引文件: {index_url}")
        try:
            response = requests.get(index_url, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as e:
            raise NetworkError(f"请求 {index_url} 失败: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise MirrorError(f"索引文件不是有效的 JSON: {e}") from e

        if not isinstance(data, list):
            raise MirrorError(f"索引文件格式不支持: {type(data).__name__}")
        return parse_node_index(data)

    def _update_cache(self, versions: List[Dict[str, Any]]) -> None:
        """
        更新版本缓存。

        参数:
            versions: 版本信息列表
        """
        cache_data = {
            "last_update": datetime.now().isoformat(),
            "versions": versions
        }
        self._memory_cache[CACHE_KEY] = cache_data
        self.config_manager.set_cache(CACHE_KEY, cache_data)
        try:
            self.config_manager.save_cache()
        except ConfigSaveError as e:
            logger.warning(f"版本缓存未能写入磁盘: {e}")
