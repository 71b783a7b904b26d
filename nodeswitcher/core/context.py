"""
应用上下文。

把配置、进程执行器、工具检测器和用户交互接口组合在一起，
作为参数传给命令层和界面层，不使用全局单例。
"""

import os
from dataclasses import dataclass
from typing import Optional

from nodeswitcher.core.config_manager import ConfigManager
from nodeswitcher.core.detector import ToolDetector
from nodeswitcher.core.interfaces import IUserPrompter
from nodeswitcher.core.process_executor import ProcessExecutor


@dataclass
class AppContext:
    """一次检测周期内共享的对象集合。"""

    config_manager: ConfigManager
    executor: ProcessExecutor
    detector: ToolDetector
    prompter: Optional[IUserPrompter] = None
    workspace_dir: Optional[str] = None

    @classmethod
    def create(
        cls,
        config_dir: Optional[str] = None,
        workspace_dir: Optional[str] = None,
        prompter: Optional[IUserPrompter] = None,
        platform: Optional[str] = None,
        executor: Optional[ProcessExecutor] = None,
    ) -> "AppContext":
        """
        按配置创建上下文。

        参数:
            config_dir: 配置目录
            workspace_dir: 项目目录，None 表示当前目录
            prompter: 用户交互接口
            platform: 平台标识
            executor: 进程执行器，None 时按配置的超时时间创建

        返回:
            AppContext 实例
        """
        config_manager = ConfigManager(config_dir)
        if executor is None:
            executor = ProcessExecutor(timeout=config_manager.get_command_timeout())
        workspace_dir = os.path.abspath(workspace_dir or os.getcwd())
        detector = ToolDetector(
            config_manager,
            executor,
            platform=platform,
            workspace_dir=workspace_dir,
            prompter=prompter,
        )
        return cls(
            config_manager=config_manager,
            executor=executor,
            detector=detector,
            prompter=prompter,
            workspace_dir=workspace_dir,
        )
