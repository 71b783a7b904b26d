"""
进程执行模块。

所有版本管理工具的命令都通过这里执行，是唯一负责创建子进程的地方。
"""

import os
import subprocess
from typing import Optional, Dict, Tuple

from nodeswitcher.utils.logger import get_logger

logger = get_logger()


class ExecutionError(Exception):
    """命令执行错误异常。"""

    def __init__(self, command: str, exit_code: Optional[int], stderr: str, message: Optional[str] = None):
        """
        初始化命令执行错误。

        参数:
            command: 执行的命令行
            exit_code: 退出码，进程未能启动或超时时为 None
            stderr: 标准错误输出
            message: 自定义错误描述
        """
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr or ""
        if message is None:
            detail = self.stderr.strip() or "无错误输出"
            message = f"命令执行失败 (退出码 {exit_code}): {detail}"
        super().__init__(message)


class ProcessExecutor:
    """
    进程执行器类。

    以 shell 命令行的方式运行外部命令，等待其结束并返回标准输出和标准错误。
    不做重试。
    """

    def __init__(self, timeout: Optional[float] = None):
        """
        初始化进程执行器。

        参数:
            timeout: 单个命令的超时时间（秒），None 或 0 表示不限制
        """
        self.timeout = timeout if timeout else None

    def run(
        self,
        command: str,
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> Tuple[str, str]:
        """
        执行命令行并返回输出。

        参数:
            command: 完整的 shell 命令行
            cwd: 工作目录，None 表示使用当前目录
            env: 需要覆盖的环境变量，会合并到当前进程环境之上

        返回:
            (stdout, stderr) 元组

        抛出:
            ExecutionError: 进程无法启动、超时或退出码非零时抛出
        """
        run_env = None
        if env:
            run_env = os.environ.copy()
            run_env.update(env)

        kwargs = {}
        if os.name == "nt":
            startupinfo = subprocess.STARTUPINFO()
            startupinfo.dwFlags |= subprocess.STARTF_USESHOWWINDOW
            startupinfo.wShowWindow = subprocess.SW_HIDE
            kwargs["startupinfo"] = startupinfo
            kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW

        logger.debug(f"执行命令: {command} (cwd={cwd})")
        try:
            result = subprocess.run(
                command,
                shell=True,
                cwd=cwd,
                env=run_env,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                **kwargs,
            )
        except subprocess.TimeoutExpired as e:
            logger.warning(f"命令执行超时 ({self.timeout} 秒): {command}")
            stderr = e.stderr if isinstance(e.stderr, str) else ""
            raise ExecutionError(
                command, None, stderr, f"命令执行超时 ({self.timeout} 秒): {command}"
            ) from e
        except OSError as e:
            logger.warning(f"无法启动命令 {command}: {e}")
            raise ExecutionError(command, None, str(e), f"无法启动命令: {e}") from e

        stdout = result.stdout or ""
        stderr = result.stderr or ""
        if result.returncode != 0:
            logger.debug(f"命令退出码 {result.returncode}: {command}\n{stderr.strip()}")
            raise ExecutionError(command, result.returncode, stderr or stdout)

        return stdout, stderr
