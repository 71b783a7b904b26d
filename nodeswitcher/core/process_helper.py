"""
Node.js 进程辅助模块。

Windows 不允许覆盖正在使用的文件，切换版本前需要结束占用 node.exe 的进程。
"""

import re
import sys
from dataclasses import dataclass
from typing import List, Optional

from nodeswitcher.core.process_executor import ProcessExecutor, ExecutionError
from nodeswitcher.utils.logger import get_logger

logger = get_logger()

_TASKLIST_LINE = re.compile(r'"([^"]+)","(\d+)"')


@dataclass
class NodeProcess:
    """正在运行的 Node.js 进程。"""

    pid: str
    command: str


def parse_ps_output(output: str) -> List[NodeProcess]:
    """
    解析 `ps aux` 的输出。

    参数:
        output: ps 命令输出

    返回:
        进程列表
    """
    processes = []
    for line in output.strip().splitlines():
        parts = line.split()
        if len(parts) < 11:
            continue
        processes.append(NodeProcess(pid=parts[1], command=" ".join(parts[10:])))
    return processes


def parse_tasklist_output(output: str) -> List[NodeProcess]:
    """
    解析 `tasklist /FO CSV /NH` 的输出。

    参数:
        output: tasklist 命令输出

    返回:
        进程列表
    """
    processes = []
    for line in output.strip().splitlines():
        if "node.exe" not in line:
            continue
        match = _TASKLIST_LINE.search(line)
        if match:
            processes.append(NodeProcess(pid=match.group(2), command=match.group(1)))
    return processes


class ProcessHelper:
    """
    Node.js 进程辅助类。

    负责列出和结束正在运行的 Node.js 进程。
    """

    def __init__(self, executor: ProcessExecutor, platform: Optional[str] = None):
        """
        初始化进程辅助类。

        参数:
            executor: 进程执行器
            platform: 平台标识，默认为 sys.platform
        """
        self.executor = executor
        self.platform = platform or sys.platform

    def get_node_processes(self) -> List[NodeProcess]:
        """
        获取正在运行的 Node.js 进程。

        返回:
            进程列表，查询失败时返回空列表
        """
        try:
            if self.platform == "win32":
                stdout, _ = self.executor.run('tasklist /FI "IMAGENAME eq node.exe" /FO CSV /NH')
                return parse_tasklist_output(stdout)
            stdout, _ = self.executor.run("ps aux | grep node | grep -v grep")
            return parse_ps_output(stdout)
        except ExecutionError as e:
            # grep 没有匹配时退出码为 1
            logger.debug(f"未找到 Node.js 进程: {e}")
            return []

    def kill_node_processes(self) -> bool:
        """
        结束所有 Node.js 进程。

        返回:
            成功返回 True

        抛出:
            ExecutionError: 结束进程失败且不是因为没有进程时抛出
        """
        try:
            if self.platform == "win32":
                self.executor.run("taskkill /F /IM node.exe /T")
            else:
                self.executor.run("pkill -9 node")
            logger.info("已结束所有 Node.js 进程")
            return True
        except ExecutionError as e:
            text = f"{e} {e.stderr}"
            # pkill 没有匹配到进程时退出码为 1
            no_process = e.exit_code == 1 and self.platform != "win32"
            if no_process or "not found" in text or "No tasks" in text:
                return True
            raise
