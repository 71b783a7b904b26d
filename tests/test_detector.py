"""工具检测器的测试。"""

import pytest

from conftest import FakeExecutor
from nodeswitcher.core.detector import ToolDetector, INSTALL_URLS
from nodeswitcher.core.managers import BaseVersionManager


@pytest.fixture
def installed(monkeypatch):
    """把指定名称的工具视为已安装。"""
    names = set()

    def fake_find(self):
        return f"/opt/tools/{self.name}" if self.name in names else None

    monkeypatch.setattr(BaseVersionManager, "_find_executable", fake_find)
    return names


def make_detector(config_manager, platform="linux"):
    return ToolDetector(config_manager, FakeExecutor(), platform=platform)


class TestDetectAll:

    def test_priority_order(self, config_manager, installed):
        installed.update({"mise", "volta"})
        detector = make_detector(config_manager)

        result = detector.detect_all()

        assert result.active == "volta"
        assert result.available
        assert detector.get_active_manager().name == "volta"
        assert result.tried == [("nvm", False), ("fnm", False), ("volta", True)]

    def test_preferred_tool_wins(self, config_manager, installed):
        installed.update({"fnm", "mise"})
        config_manager.set_setting("preferred_tool", "mise")
        detector = make_detector(config_manager)

        result = detector.detect_all()

        assert result.active == "mise"
        assert result.tried == [("mise", True)]

    def test_preferred_tool_missing_falls_back(self, config_manager, installed):
        installed.add("pnpm")
        config_manager.set_setting("preferred_tool", "volta")
        detector = make_detector(config_manager)

        result = detector.detect_all()

        assert result.active == "pnpm"
        assert result.tried[0] == ("volta", False)
        assert [name for name, _ in result.tried].count("volta") == 1

    def test_preferred_nvm_matches_nvm_windows(self, config_manager, installed):
        installed.add("nvm-windows")
        config_manager.set_setting("preferred_tool", "nvm")
        detector = make_detector(config_manager, platform="win32")

        assert detector.detect_all().active == "nvm-windows"

    def test_nothing_installed(self, config_manager, installed):
        detector = make_detector(config_manager)
        result = detector.detect_all()

        assert result.active is None
        assert not result.available
        assert detector.get_active_manager() is None
        assert all(ok is False for _, ok in result.tried)
        assert detector.get_recommended_install_urls() == [INSTALL_URLS["nvm"], INSTALL_URLS["mise"]]

    def test_recommended_urls_on_windows(self, config_manager):
        detector = make_detector(config_manager, platform="win32")
        assert INSTALL_URLS["nvm-windows"] in detector.get_recommended_install_urls()


class TestSwitchManager:

    def test_switch_to_detected_tool(self, config_manager, installed):
        installed.update({"fnm", "mise"})
        detector = make_detector(config_manager)
        detector.detect_all()

        assert detector.switch_manager("mise")
        assert detector.get_active_manager().name == "mise"

    def test_failed_switch_keeps_current(self, config_manager, installed):
        installed.add("fnm")
        detector = make_detector(config_manager)
        detector.detect_all()

        assert detector.switch_manager("volta") is False
        assert detector.switch_manager("rustup") is False
        assert detector.get_active_manager().name == "fnm"

    def test_detect_available_lists_all_installed(self, config_manager, installed):
        installed.update({"nvm", "pnpm"})
        detector = make_detector(config_manager)
        detector.detect_all()

        assert [m.name for m in detector.detect_available()] == ["nvm", "pnpm"]
        assert detector.get_active_manager().name == "nvm"


class TestOfficialNodejs:

    def test_disabled_by_setting(self, config_manager, monkeypatch):
        monkeypatch.setattr("nodeswitcher.core.detector.shutil.which", lambda name: "/usr/bin/node")
        detector = make_detector(config_manager)
        assert detector.detect_official_nodejs() is None

    def test_unmanaged_node_is_reported(self, config_manager, monkeypatch, tmp_path):
        node = tmp_path / "usr" / "bin" / "node"
        node.parent.mkdir(parents=True)
        node.write_text("")
        monkeypatch.setattr("nodeswitcher.core.detector.shutil.which", lambda name: str(node))
        config_manager.set_setting("check_official_nodejs", True)

        assert make_detector(config_manager).detect_official_nodejs() == str(node)

    def test_managed_node_is_ignored(self, config_manager, monkeypatch, tmp_path):
        nvm_dir = tmp_path / "nvm"
        node = nvm_dir / "versions" / "node" / "v20.10.0" / "bin" / "node"
        node.parent.mkdir(parents=True)
        node.write_text("")
        monkeypatch.setenv("NVM_DIR", str(nvm_dir))
        monkeypatch.setattr("nodeswitcher.core.detector.shutil.which", lambda name: str(node))
        config_manager.set_setting("check_official_nodejs", True)

        assert make_detector(config_manager).detect_official_nodejs() is None

    def test_symlinked_shim_counts_as_managed(self, config_manager, monkeypatch, tmp_path):
        home = tmp_path / "home"
        mise = home / ".local" / "bin" / "mise"
        mise.parent.mkdir(parents=True)
        mise.write_text("")
        shim = home / ".local" / "share" / "mise" / "shims" / "node"
        shim.parent.mkdir(parents=True)
        shim.symlink_to(mise)
        monkeypatch.setenv("HOME", str(home))
        monkeypatch.delenv("MISE_DATA_DIR", raising=False)
        monkeypatch.setattr("nodeswitcher.core.detector.shutil.which", lambda name: str(shim))
        config_manager.set_setting("check_official_nodejs", True)

        assert make_detector(config_manager).detect_official_nodejs() is None
