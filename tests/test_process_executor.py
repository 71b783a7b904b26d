"""进程执行器和进程辅助模块的测试。"""

import sys

import pytest

from conftest import FakeExecutor
from nodeswitcher.core.process_executor import ProcessExecutor, ExecutionError
from nodeswitcher.core.process_helper import (
    ProcessHelper, parse_ps_output, parse_tasklist_output,
)

PYTHON = f'"{sys.executable}"'


class TestProcessExecutor:

    def test_returns_output(self):
        stdout, stderr = ProcessExecutor().run(f'{PYTHON} -c "print(42)"')
        assert stdout.strip() == "42"
        assert stderr == ""

    def test_non_zero_exit_carries_stderr(self):
        command = f'{PYTHON} -c "import sys; sys.stderr.write(\'bad version\'); sys.exit(3)"'
        with pytest.raises(ExecutionError) as excinfo:
            ProcessExecutor().run(command)
        assert excinfo.value.exit_code == 3
        assert "bad version" in excinfo.value.stderr
        assert "bad version" in str(excinfo.value)

    def test_env_is_merged(self, monkeypatch):
        monkeypatch.setenv("NODESWITCHER_OUTER", "outer")
        command = f'{PYTHON} -c "import os; print(os.environ[\'NODESWITCHER_OUTER\'], os.environ[\'NODESWITCHER_INNER\'])"'
        stdout, _ = ProcessExecutor().run(command, env={"NODESWITCHER_INNER": "inner"})
        assert stdout.split() == ["outer", "inner"]

    def test_cwd(self, tmp_path):
        stdout, _ = ProcessExecutor().run(f'{PYTHON} -c "import os; print(os.getcwd())"', cwd=str(tmp_path))
        assert stdout.strip() == str(tmp_path.resolve())

    def test_timeout(self):
        with pytest.raises(ExecutionError) as excinfo:
            ProcessExecutor(timeout=0.5).run(f'{PYTHON} -c "import time; time.sleep(5)"')
        assert excinfo.value.exit_code is None

    def test_zero_timeout_means_unbounded(self):
        assert ProcessExecutor(timeout=0).timeout is None


class TestProcessHelper:

    def test_parse_ps_output(self):
        output = (
            "alice  1234  0.0  0.1 123 456 ?  S  10:00  0:00 node server.js\n"
            "alice  5678  0.0  0.1 123 456 ?  S  10:00  0:00 /usr/bin/node --inspect app.js\n"
        )
        processes = parse_ps_output(output)
        assert [p.pid for p in processes] == ["1234", "5678"]
        assert processes[1].command == "/usr/bin/node --inspect app.js"

    def test_parse_tasklist_output(self):
        output = '"node.exe","4242","Console","1","45,000 K"\n"INFO: No tasks"\n'
        processes = parse_tasklist_output(output)
        assert len(processes) == 1
        assert processes[0].pid == "4242"

    def test_no_processes_is_empty(self):
        executor = FakeExecutor().fail("ps aux", "", exit_code=1)
        assert ProcessHelper(executor, "linux").get_node_processes() == []

    def test_kill_uses_platform_command(self):
        executor = FakeExecutor()
        ProcessHelper(executor, "win32").kill_node_processes()
        ProcessHelper(executor, "linux").kill_node_processes()
        assert executor.commands == ["taskkill /F /IM node.exe /T", "pkill -9 node"]
