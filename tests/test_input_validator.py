"""输入验证器的测试。"""

import pytest

from nodeswitcher.core.config_manager import DEFAULT_NODE_INDEX_MIRRORS
from nodeswitcher.utils.input_validator import InputValidator, InputValidationError


class TestValidateUrl:

    @pytest.mark.parametrize("url", DEFAULT_NODE_INDEX_MIRRORS + [
        "https://mirrors.example.com:8443/node/",
        "",
    ])
    def test_accepts(self, url):
        assert InputValidator.validate_url(url) is True

    @pytest.mark.parametrize("url", ["ftp://example.com", "https://", "nodejs.org/dist", "https://bad host/"])
    def test_rejects(self, url):
        with pytest.raises(InputValidationError):
            InputValidator.validate_url(url)


class TestValidateVersion:

    @pytest.mark.parametrize("version", ["20", "v20.10.0", "lts", "lts/iron", "lts/*"])
    def test_accepts(self, version):
        assert InputValidator.validate_version_string(version) is True

    @pytest.mark.parametrize("version", ["", "20; rm -rf /", "20 && echo", "$(id)"])
    def test_rejects(self, version):
        with pytest.raises(InputValidationError):
            InputValidator.validate_version_string(version)
