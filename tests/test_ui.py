"""界面层 ViewModel 的测试，不创建窗口。"""

import pytest

pytest.importorskip("PySide6")

from unittest.mock import MagicMock

from PySide6.QtCore import QCoreApplication

from conftest import FakeExecutor, make_available
from nodeswitcher.core.managers import FnmManager, NvmManager
from nodeswitcher.core.models import Scope
from nodeswitcher.core.node_service import StatusInfo, build_status
from nodeswitcher.core.pin_handler import PinFileHandler
from nodeswitcher.ui.viewmodels import AsyncTaskManager, PinFileWatcher, StatusProvider


@pytest.fixture(scope="session")
def qapp():
    return QCoreApplication.instance() or QCoreApplication([])


def settle(app, tasks):
    assert tasks.wait_for_done(5000)
    app.processEvents()


class TestStatusProvider:

    def test_update_emits_only_on_change(self, qapp):
        provider = StatusProvider(MagicMock())
        changes = []
        provider.statusChanged.connect(lambda: changes.append(provider.text))

        status = StatusInfo("Node 20.10.0", "tip", manager="fnm", version="20.10.0")
        provider.update_status(status)
        provider.update_status(StatusInfo("Node 20.10.0", "tip", manager="fnm", version="20.10.0"))

        assert changes == ["Node 20.10.0"]
        assert provider.tooltip == "tip"

    def test_initial_and_refresh(self, qapp):
        service = MagicMock()
        service.get_status.return_value = StatusInfo("Node (not set)", "none")
        provider = StatusProvider(service)

        assert provider.text == build_status(None).text
        provider.refresh()
        assert provider.text == "Node (not set)"


class TestAsyncTaskManager:

    def test_service_task_result(self, qapp):
        service = MagicMock()
        service.switch_version.return_value = "done"
        tasks = AsyncTaskManager(service)
        finished = []
        tasks.taskFinished.connect(lambda name, result: finished.append((name, result)))

        tasks.switch_version("20.10.0", Scope.LOCAL)
        assert tasks.busy
        settle(qapp, tasks)

        service.switch_version.assert_called_once_with("20.10.0", Scope.LOCAL)
        assert finished == [("switch", "done")]
        assert not tasks.busy

    def test_failure_sets_message(self, qapp):
        service = MagicMock()
        service.install_version.side_effect = RuntimeError("boom")
        tasks = AsyncTaskManager(service)
        failures = []
        tasks.taskFailed.connect(lambda name, error: failures.append((name, error)))

        tasks.install_version("22", "no")
        settle(qapp, tasks)

        assert failures == [("install", "boom")]
        assert "boom" in tasks.message

    def test_status_loader(self, qapp):
        service = MagicMock()
        status = StatusInfo("Node 20.10.0", "tip", version="20.10.0")
        service.get_status.return_value = status
        service.detector.get_active_manager.return_value.get_installed_versions.return_value = [
            "18.19.0", "20.10.0",
        ]
        tasks = AsyncTaskManager(service)
        loaded = []
        tasks.statusLoaded.connect(loaded.append)
        tasks.versionsLoaded.connect(lambda installed, current: loaded.append((installed, current)))

        tasks.refresh()
        settle(qapp, tasks)

        service.refresh.assert_called_once_with(notify=False)
        assert loaded == [status, (["20.10.0", "18.19.0"], "20.10.0")]


class TestPinFileWatcher:

    @pytest.fixture
    def service(self, config_manager):
        manager = make_available(FnmManager(FakeExecutor(), config_manager=config_manager))
        service = MagicMock()
        service.create_pin_handler.side_effect = lambda: PinFileHandler(manager, config_manager)
        return service

    def test_watches_workspace_and_existing_pins(self, qapp, service, workspace):
        pin = workspace / ".node-version"
        pin.write_text("20\n")
        watcher = PinFileWatcher(service, str(workspace))
        watcher.start()

        assert str(workspace) in watcher.watched_directories()
        assert str(pin) in watcher.watched_files()
        watcher.dispose()
        assert watcher.watched_files() == []

    def test_check_now(self, qapp, service, workspace):
        pin = workspace / ".node-version"
        pin.write_text("20\n")
        watcher = PinFileWatcher(service, str(workspace))
        changed = []
        watcher.pinChanged.connect(changed.append)
        watcher.start()

        assert watcher.check_now(str(pin)) is True
        assert watcher.check_now(str(workspace / ".nvmrc")) is False
        assert changed == [str(pin)]
        service.apply_pin.assert_called_once_with(str(workspace))
        watcher.dispose()

    def test_no_apply_mode(self, qapp, service, workspace):
        pin = workspace / ".node-version"
        pin.write_text("20\n")
        watcher = PinFileWatcher(service, str(workspace), apply=False)
        watcher.start()
        watcher.check_now(str(pin))
        service.apply_pin.assert_not_called()
        watcher.dispose()

    def test_cannot_restart_after_dispose(self, qapp, service, workspace):
        watcher = PinFileWatcher(service, str(workspace))
        watcher.dispose()
        with pytest.raises(RuntimeError):
            watcher.start()

    def test_reload_follows_active_tool(self, qapp, config_manager, workspace):
        fnm = make_available(FnmManager(FakeExecutor(), config_manager=config_manager))
        nvm = make_available(NvmManager(FakeExecutor(), config_manager=config_manager))
        active = [fnm]
        service = MagicMock()
        service.create_pin_handler.side_effect = lambda: PinFileHandler(active[0], config_manager)
        node_version = workspace / ".node-version"
        node_version.write_text("20\n")
        nvmrc = workspace / ".nvmrc"
        nvmrc.write_text("18\n")

        watcher = PinFileWatcher(service, str(workspace), apply=False)
        watcher.start()
        assert str(node_version) in watcher.watched_files()
        assert watcher.check_now(str(nvmrc)) is False

        active[0] = nvm
        watcher.reload()

        assert str(nvmrc) in watcher.watched_files()
        assert str(node_version) not in watcher.watched_files()
        assert watcher.check_now(str(nvmrc)) is True
        watcher.dispose()
