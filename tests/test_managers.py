"""版本管理工具适配器的测试，所有外部命令都由 FakeExecutor 模拟。"""

import os
import shlex

import pytest

from conftest import FakeExecutor, FakePrompter, make_available
from nodeswitcher.core.managers import (
    FnmManager, InstallError, MiseManager, NvmManager, NvmWindowsManager,
    OperationCancelledError, PnpmManager, PreconditionError, SetVersionError,
    VoltaManager, create_managers, manager_names,
)
from nodeswitcher.core.managers import pnpm as pnpm_module
from nodeswitcher.core.models import Scope


def nvm(executor, workspace=None):
    manager = NvmManager(executor, workspace_dir=str(workspace) if workspace else None, platform="linux")
    return make_available(manager, "/home/dev/.nvm/nvm.sh")


class TestDetection:

    def test_detect_uses_configured_path(self, tmp_path, executor, config_manager):
        exe = tmp_path / "fnm"
        exe.write_text("")
        config_manager.set_tool_path("fnm", str(exe))

        manager = FnmManager(executor, config_manager=config_manager, platform="linux")
        assert manager.detect()
        assert manager.is_available
        assert manager.executable_path == str(exe)
        assert manager.command == str(exe)

    def test_failed_detection_leaves_state_untouched(self, monkeypatch, executor):
        monkeypatch.setattr(MiseManager, "get_known_paths", lambda self: [])
        monkeypatch.setattr("nodeswitcher.core.managers.base.shutil.which", lambda name: None)

        manager = MiseManager(executor, platform="linux")
        assert manager.detect() is False
        assert manager.is_available is False
        assert manager.command is None
        assert manager.executable_path is None

    def test_detect_never_raises(self, monkeypatch, executor):
        def explode(self):
            raise RuntimeError("broken filesystem")

        monkeypatch.setattr(VoltaManager, "_find_executable", explode)
        manager = VoltaManager(executor, platform="linux")
        assert manager.detect() is False
        assert manager.is_available is False

    def test_nvm_is_not_detected_on_windows(self, executor):
        assert NvmManager(executor, platform="win32").detect() is False

    def test_nvm_windows_is_not_detected_on_unix(self, executor):
        assert NvmWindowsManager(executor, platform="linux").detect() is False

    def test_nvm_windows_rejects_unix_script_on_path(self, monkeypatch, executor):
        monkeypatch.setattr(NvmWindowsManager, "get_known_paths", lambda self: [])
        monkeypatch.setattr("nodeswitcher.core.managers.base.shutil.which", lambda name: "/usr/bin/nvm")
        assert NvmWindowsManager(executor, platform="win32").detect() is False

    def test_manager_order(self):
        assert manager_names("linux") == ["nvm", "fnm", "volta", "mise", "pnpm"]
        assert manager_names("win32") == ["nvm-windows", "fnm", "volta", "mise", "pnpm"]
        names = [m.name for m in create_managers(FakeExecutor(), platform="win32")]
        assert names == manager_names("win32")


class TestQueries:

    def test_unavailable_manager_returns_empty(self, executor):
        manager = FnmManager(executor, platform="linux")
        assert manager.get_installed_versions() == []
        assert manager.get_current_version() is None
        assert manager.get_available_versions() == []
        assert executor.calls == []

    def test_failed_query_degrades(self, executor):
        executor.fail("nvm list", stderr="nvm: command not found")
        executor.fail("nvm current")
        manager = nvm(executor)
        assert manager.get_installed_versions() == []
        assert manager.get_current_version() is None

    def test_nvm_runs_inside_bash(self, executor):
        executor.add("nvm list", "->     v20.10.0\n       v18.19.0\ndefault -> 20 (-> v20.10.0)\n")
        manager = nvm(executor)

        assert manager.get_installed_versions() == ["20.10.0", "18.19.0"]
        call = executor.calls[0]
        assert call.command.startswith("bash -c ")
        assert "source /home/dev/.nvm/nvm.sh && nvm list" in call.command
        assert call.env == {"NVM_DIR": manager.nvm_dir}

    def test_nvm_current_none(self, executor):
        executor.add("nvm current", "none\n")
        assert nvm(executor).get_current_version() is None

    def test_nvm_available_versions_are_truncated(self, executor):
        output = "".join(f"       v{major}.0.0   (LTS: x)\n" for major in range(4, 30))
        executor.add("nvm ls-remote --lts", output)
        versions = nvm(executor).get_available_versions()
        assert len(versions) == 20
        assert versions[0] == "29.0.0"

    def test_fnm_current_falls_back_to_node_version_file(self, executor, workspace):
        (workspace / ".node-version").write_text("v18.19.0\n")
        executor.add("fnm current", "none\n")
        manager = make_available(FnmManager(executor, workspace_dir=str(workspace), platform="linux"))
        assert manager.get_current_version() == "18.19.0"

    def test_fnm_current_from_list_default(self, executor, monkeypatch, tmp_path):
        monkeypatch.setenv("FNM_DIR", str(tmp_path / "fnm-data"))
        executor.fail("fnm current")
        executor.add("fnm list", "* v18.19.0\n* v20.10.0 default\n* system\n")
        manager = make_available(FnmManager(executor, platform="linux"))
        assert manager.get_current_version() == "20.10.0"

    def test_fnm_default_alias_symlink(self, executor, monkeypatch, tmp_path):
        fnm_dir = tmp_path / "fnm-data"
        target = fnm_dir / "node-versions" / "v22.1.0" / "installation"
        target.mkdir(parents=True)
        (fnm_dir / "aliases").mkdir()
        os.symlink(target, fnm_dir / "aliases" / "default")
        monkeypatch.setenv("FNM_DIR", str(fnm_dir))
        executor.fail("fnm current")

        manager = make_available(FnmManager(executor, platform="linux"))
        assert manager.get_current_version() == "22.1.0"

    def test_volta_lists_runtimes(self, executor):
        executor.add(
            "volta list node --format plain",
            "runtime node@20.10.0 (default)\nruntime node@18.19.0\n",
        )
        executor.add("volta list --current --format plain", "runtime node@20.10.0 (current @ ~/p/package.json)\n")
        manager = make_available(VoltaManager(executor, platform="linux"))
        assert manager.get_installed_versions() == ["20.10.0", "18.19.0"]
        assert manager.get_current_version() == "20.10.0"

    def test_mise_queries(self, executor):
        executor.add("mise ls node --json", '[{"version": "20.10.0"}, {"version": "22.1.0"}]')
        executor.add("mise current node", "22.1.0\n")
        manager = make_available(MiseManager(executor, platform="linux"))
        assert manager.get_installed_versions() == ["20.10.0", "22.1.0"]
        assert manager.get_current_version() == "22.1.0"

    def test_nvm_windows_current_falls_back_to_list(self, executor):
        executor.fail("nvm current")
        executor.add("nvm list", "    20.10.0\n  * 18.19.0 (Currently using 64-bit executable)\n")
        manager = make_available(NvmWindowsManager(executor, platform="win32"), "nvm")
        assert manager.get_current_version() == "18.19.0"

    def test_pnpm_current_uses_node_binary(self, executor):
        executor.add("node --version", "v20.10.0\n")
        manager = make_available(PnpmManager(executor, platform="linux"))
        assert manager.get_current_version() == "20.10.0"


class TestPreconditions:

    @pytest.mark.parametrize("version", ["", "   ", None, "v"])
    def test_empty_version_is_rejected_before_running(self, executor, workspace, version):
        manager = nvm(executor, workspace)
        with pytest.raises(PreconditionError):
            manager.set_version(version, Scope.GLOBAL)
        with pytest.raises(PreconditionError):
            manager.install_version(version)
        assert executor.calls == []

    def test_shell_metacharacters_are_rejected(self, executor):
        manager = nvm(executor)
        with pytest.raises(PreconditionError):
            manager.set_version("20; rm -rf ~", Scope.GLOBAL)
        assert executor.calls == []

    def test_local_scope_requires_workspace(self, executor):
        manager = make_available(MiseManager(executor, workspace_dir=None, platform="linux"))
        with pytest.raises(PreconditionError):
            manager.set_version("20.10.0", Scope.LOCAL)
        assert executor.calls == []

    def test_unavailable_manager_cannot_set(self, executor):
        with pytest.raises(PreconditionError):
            MiseManager(executor, platform="linux").set_version("20.10.0")

    def test_unknown_scope(self, executor):
        with pytest.raises(PreconditionError):
            nvm(executor).set_version("20.10.0", "everywhere")


class TestSetVersion:

    def test_nvm_global(self, executor):
        result = nvm(executor).set_version("v20.10.0", Scope.GLOBAL)
        assert result.version == "20.10.0"
        assert result.effective_scope == Scope.GLOBAL
        assert executor.ran("nvm use 20.10.0")
        assert executor.ran("nvm alias default 20.10.0")

    def test_nvm_local_writes_nvmrc(self, executor, workspace):
        result = nvm(executor, workspace).set_version("18", "local")
        assert (workspace / ".nvmrc").read_text() == "18\n"
        assert executor.calls[-1].cwd == str(workspace)
        assert executor.ran("nvm use")
        assert not executor.ran("alias default")
        assert result.messages

    def test_fnm_local_and_global_are_identical(self, tmp_path):
        outcomes = []
        for scope in (Scope.LOCAL, Scope.GLOBAL):
            workspace = tmp_path / scope.value
            workspace.mkdir()
            executor = FakeExecutor().add("fnm list", "* v20.10.0 default\n")
            manager = make_available(FnmManager(executor, workspace_dir=str(workspace), platform="linux"))
            result = manager.set_version("20.10.0", scope)
            outcomes.append((executor.commands, (workspace / ".node-version").read_text(), result.effective_scope))

        assert outcomes[0] == outcomes[1]
        assert outcomes[0][1] == "20.10.0\n"
        assert outcomes[0][2] == Scope.LOCAL

    def test_fnm_installs_missing_version(self, executor, workspace):
        executor.add("fnm list", "* v18.19.0 default\n")
        manager = make_available(FnmManager(executor, workspace_dir=str(workspace), platform="linux"))
        result = manager.set_version("20.10.0", Scope.LOCAL)
        assert executor.ran("fnm install 20.10.0")
        assert any("--use-on-cd" in m for m in result.messages)

    def test_volta_local_pins_package(self, executor, workspace):
        make_available(VoltaManager(executor, workspace_dir=str(workspace), platform="linux")).set_version(
            "20.10.0", Scope.LOCAL
        )
        assert executor.commands == ["volta pin node@20.10.0"]
        assert executor.calls[0].cwd == str(workspace)

    def test_volta_global_installs_default(self, executor):
        make_available(VoltaManager(executor, platform="linux")).set_version("20.10.0", Scope.GLOBAL)
        assert executor.commands == ["volta install node@20.10.0"]

    def test_mise_scopes(self, executor, workspace):
        manager = make_available(MiseManager(executor, workspace_dir=str(workspace), platform="linux"))
        manager.set_version("20.10.0", Scope.LOCAL)
        manager.set_version("22.1.0", Scope.GLOBAL)
        assert executor.commands == ["mise use node@20.10.0", "mise use --global node@22.1.0"]

    def test_pnpm_local_is_coerced_to_global(self, executor, workspace):
        executor.add("pnpm env list", "  20.10.0\n")
        manager = make_available(PnpmManager(executor, workspace_dir=str(workspace), platform="linux"))

        result = manager.set_version("20.10.0", Scope.LOCAL)

        assert result.requested_scope == Scope.LOCAL
        assert result.effective_scope == Scope.GLOBAL
        assert result.scope_coerced
        assert "pnpm 只支持全局设置，已将项目设置改为全局设置" in result.messages
        assert executor.ran("pnpm env use --global 20.10.0")
        assert not executor.ran("env add")

    def test_pnpm_installs_missing_version(self, executor):
        manager = make_available(PnpmManager(executor, platform="linux"))
        manager.set_version("22.1.0", Scope.GLOBAL)
        assert executor.commands.index("pnpm env add --global 22.1.0") < executor.commands.index(
            "pnpm env use --global 22.1.0"
        )

    def test_pnpm_windows_cancel(self, executor):
        executor.add("tasklist", '"node.exe","4242","Console","1","35,120 K"\n')
        prompter = FakePrompter([pnpm_module.CANCEL])
        manager = make_available(PnpmManager(executor, prompter=prompter, platform="win32"))

        with pytest.raises(OperationCancelledError):
            manager.set_version("20.10.0")
        assert not executor.ran("env use")
        assert prompter.questions[0][1] == [pnpm_module.KILL_AND_CONTINUE, pnpm_module.CONTINUE_ANYWAY, pnpm_module.CANCEL]

    def test_pnpm_windows_kill_and_continue(self, executor):
        executor.add("tasklist", '"node.exe","4242","Console","1","35,120 K"\n')
        executor.add("pnpm env list", "* 20.10.0\n")
        prompter = FakePrompter([pnpm_module.KILL_AND_CONTINUE])
        manager = make_available(PnpmManager(executor, prompter=prompter, platform="win32"))

        result = manager.set_version("20.10.0")
        assert executor.ran("taskkill /F /IM node.exe /T")
        assert executor.ran("pnpm env use --global 20.10.0")
        assert any("已结束 1 个" in m for m in result.messages)

    def test_nvm_windows_local_request(self, executor, workspace, monkeypatch):
        monkeypatch.setattr("nodeswitcher.core.managers.nvm_windows.is_admin", lambda: True)
        manager = make_available(
            NvmWindowsManager(executor, workspace_dir=str(workspace), platform="win32"), "nvm"
        )
        result = manager.set_version("20.10.0", Scope.LOCAL)
        assert result.effective_scope == Scope.GLOBAL
        assert executor.commands == ["nvm use 20.10.0"]
        assert (workspace / ".nvmrc").read_text() == "20.10.0\n"

    def test_nvm_windows_warns_without_admin(self, executor, monkeypatch):
        monkeypatch.setattr("nodeswitcher.core.managers.nvm_windows.is_admin", lambda: False)
        manager = make_available(NvmWindowsManager(executor, platform="win32"), "nvm")
        result = manager.set_version("20.10.0")
        assert any("管理员" in m for m in result.messages)

    def test_failure_carries_tool_stderr(self, executor):
        executor.fail("mise use --global", stderr="mise ERROR no versions found for node@99")
        manager = make_available(MiseManager(executor, platform="linux"))
        with pytest.raises(SetVersionError) as excinfo:
            manager.set_version("99.0.0", Scope.GLOBAL)
        assert "no versions found" in str(excinfo.value)


class TestInstall:

    def test_install_commands(self, executor):
        make_available(VoltaManager(executor, platform="linux")).install_version("lts")
        make_available(MiseManager(executor, platform="linux")).install_version("22")
        make_available(PnpmManager(executor, platform="linux")).install_version("20.10.0")
        assert executor.commands == [
            "volta install node@lts",
            "mise install node@22",
            "pnpm env add --global 20.10.0",
        ]

    def test_glob_characters_are_quoted(self, executor):
        make_available(MiseManager(executor, platform="linux")).install_version("lts/*")
        nvm(executor).install_version("lts/*")
        make_available(NvmWindowsManager(executor, platform="win32")).install_version("lts/*")

        assert executor.commands[0] == "mise install 'node@lts/*'"
        assert shlex.split(executor.commands[1])[2].endswith("nvm install 'lts/*'")
        assert executor.commands[2] == 'nvm-windows install "lts/*"'

    def test_install_failure(self, executor):
        executor.fail("nvm install", stderr="Version '99' not found - try `nvm ls-remote`")
        with pytest.raises(InstallError) as excinfo:
            nvm(executor).install_version("99")
        assert "not found" in str(excinfo.value)


class TestMetadata:

    @pytest.mark.parametrize("cls, supports, config_file", [
        (NvmManager, True, ".nvmrc"),
        (NvmWindowsManager, False, ".nvmrc"),
        (FnmManager, False, ".node-version"),
        (VoltaManager, True, "package.json"),
        (MiseManager, True, ".mise.toml"),
        (PnpmManager, False, None),
    ])
    def test_scope_support_and_config_file(self, cls, supports, config_file):
        manager = cls(FakeExecutor(), platform="linux")
        assert manager.supports_scope() is supports
        assert manager.get_config_file_name() == config_file

    def test_pnpm_uses_generic_pin_files(self):
        names = [a.filename for a in PnpmManager(FakeExecutor()).get_pin_artifacts()]
        assert names == [".nvmrc", ".node-version"]
