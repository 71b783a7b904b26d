"""远程版本获取器的测试，网络请求通过 mock 模拟。"""

from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest
import requests

from nodeswitcher.core.remote_fetcher import RemoteFetcher, parse_node_index, CACHE_KEY

INDEX = [
    {"version": "v22.1.0", "date": "2024-05-02", "lts": False},
    {"version": "v20.10.0", "date": "2023-11-22", "lts": "Iron"},
    {"version": "v18.19.0", "date": "2023-11-29", "lts": "Hydrogen"},
    {"version": "v20.9.0", "date": "2023-10-24", "lts": "Iron"},
]


def response(data, status=200):
    mock = MagicMock()
    mock.status_code = status
    mock.json.return_value = data
    if status >= 400:
        mock.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return mock


class TestParseNodeIndex:

    def test_parses_lts_names(self):
        versions = parse_node_index(INDEX)
        assert versions[1] == {
            "version": "20.10.0",
            "lts": True,
            "lts_name": "Iron",
            "release_date": "2023-11-22",
        }
        assert versions[0]["lts"] is False

    def test_invalid_input(self):
        assert parse_node_index({"version": "v1.0.0"}) == []
        assert parse_node_index([{"version": "latest"}, "junk"]) == []


class TestRemoteFetcher:

    @patch("nodeswitcher.core.remote_fetcher.requests.get")
    def test_lts_versions_sorted(self, mock_get, config_manager):
        mock_get.return_value = response(INDEX)

        versions = RemoteFetcher(config_manager).get_lts_versions()

        assert versions == ["20.10.0", "20.9.0", "18.19.0"]
        url = mock_get.call_args[0][0]
        assert url == "https://nodejs.org/dist/index.json"

    @patch("nodeswitcher.core.remote_fetcher.requests.get")
    def test_falls_back_to_next_mirror(self, mock_get, config_manager):
        mock_get.side_effect = [requests.ConnectionError("offline"), response(INDEX)]

        versions = RemoteFetcher(config_manager).get_remote_versions(use_cache=False)

        assert versions[0]["version"] == "22.1.0"
        assert mock_get.call_count == 2
        assert "npmmirror.com" in mock_get.call_args[0][0]

    @patch("nodeswitcher.core.remote_fetcher.requests.get")
    def test_uses_cache(self, mock_get, config_manager):
        mock_get.return_value = response(INDEX)
        fetcher = RemoteFetcher(config_manager)
        fetcher.get_remote_versions()
        fetcher.get_remote_versions()

        assert mock_get.call_count == 1
        assert CACHE_KEY in config_manager.get_cache()

    @patch("nodeswitcher.core.remote_fetcher.requests.get")
    def test_stale_cache_when_offline(self, mock_get, config_manager):
        old = (datetime.now() - timedelta(days=30)).isoformat()
        config_manager.set_cache(CACHE_KEY, {"last_update": old, "versions": parse_node_index(INDEX)})
        mock_get.side_effect = requests.ConnectionError("offline")

        versions = RemoteFetcher(config_manager).get_remote_versions()

        assert len(versions) == len(INDEX)
        assert mock_get.call_count == 2

    @patch("nodeswitcher.core.remote_fetcher.requests.get")
    def test_all_mirrors_fail(self, mock_get, config_manager):
        mock_get.return_value = response(None, status=503)
        assert RemoteFetcher(config_manager).get_remote_versions(use_cache=False) == []

    @patch("nodeswitcher.core.remote_fetcher.requests.get")
    def test_invalid_json(self, mock_get, config_manager):
        bad = response(None)
        bad.json.side_effect = ValueError("no json")
        mock_get.return_value = bad
        assert RemoteFetcher(config_manager).get_lts_versions(use_cache=False) == []
