"""测试公共夹具。"""

import os
import tempfile

# 必须在导入 nodeswitcher 之前设置，日志和配置都写到临时目录
os.environ["NODESWITCHER_HOME"] = tempfile.mkdtemp(prefix="nodeswitcher-test-")

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import pytest

from nodeswitcher.core.config_manager import ConfigManager
from nodeswitcher.core.interfaces import IUserPrompter
from nodeswitcher.core.process_executor import ExecutionError


@dataclass
class Call:
    command: str
    cwd: Optional[str]
    env: Optional[Dict[str, str]]


class FakeExecutor:
    """
    按命令子串返回预设输出的执行器。

    多个子串都匹配时使用最长的那个；没有匹配时返回空输出。
    """

    def __init__(self):
        self.responses: Dict[str, Tuple[str, str, int]] = {}
        self.calls: List[Call] = []

    def add(self, pattern: str, stdout: str = "", stderr: str = "", exit_code: int = 0) -> "FakeExecutor":
        self.responses[pattern] = (stdout, stderr, exit_code)
        return self

    def fail(self, pattern: str, stderr: str = "boom", exit_code: int = 1) -> "FakeExecutor":
        return self.add(pattern, "", stderr, exit_code)

    @property
    def commands(self) -> List[str]:
        return [c.command for c in self.calls]

    def ran(self, pattern: str) -> bool:
        return any(pattern in c for c in self.commands)

    def run(self, command: str, cwd: Optional[str] = None, env: Optional[Dict[str, str]] = None):
        self.calls.append(Call(command, cwd, env))
        matches = [p for p in self.responses if p in command]
        if not matches:
            return "", ""
        stdout, stderr, exit_code = self.responses[max(matches, key=len)]
        if exit_code != 0:
            raise ExecutionError(command, exit_code, stderr)
        return stdout, stderr


class FakePrompter(IUserPrompter):
    """按顺序返回预设答案并记录所有消息。"""

    def __init__(self, answers: Optional[List[Optional[str]]] = None):
        self.answers = list(answers or [])
        self.questions: List[Tuple[str, List[str]]] = []
        self.infos: List[str] = []
        self.warnings: List[str] = []
        self.errors: List[str] = []

    def ask(self, message, choices):
        self.questions.append((message, list(choices)))
        return self.answers.pop(0) if self.answers else None

    def ask_text(self, message):
        self.questions.append((message, []))
        return self.answers.pop(0) if self.answers else None

    def info(self, message):
        self.infos.append(message)

    def warn(self, message):
        self.warnings.append(message)

    def error(self, message):
        self.errors.append(message)


def make_available(manager, command: Optional[str] = None):
    """跳过检测，直接把适配器标记为可用。"""
    manager.command = command or manager.name
    manager.executable_path = manager.command
    manager.is_available = True
    return manager


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def prompter():
    return FakePrompter()


@pytest.fixture
def workspace(tmp_path):
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def config_manager(tmp_path):
    manager = ConfigManager(str(tmp_path / "config"))
    manager.set_setting("check_official_nodejs", False)
    return manager
