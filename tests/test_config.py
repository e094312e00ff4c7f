"""Tests for hyperpwn.config.HyperpwnConfig."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from hyperpwn.config import HyperpwnConfig

_ENV_VARS = (
    "HYPERPWN_SHOW_HEADERS",
    "HYPERPWN_MAX_SEGMENTS",
    "HYPERPWN_TAB_SIZE",
    "HYPERPWN_COLUMNS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep load_dotenv away from any .env in the working tree
    monkeypatch.chdir(tmp_path)


class TestDefaults:
    def test_defaults(self) -> None:
        config = HyperpwnConfig()
        assert config.hotkeys.prev == "ctrl+shift+pageup"
        assert config.hotkeys.next == "ctrl+shift+pagedown"
        assert config.show_headers is True
        assert config.header_style == {
            "position": "absolute",
            "top": 0,
            "right": 0,
            "fontSize": "10px",
        }
        assert config.replay.default_columns == 80
        assert config.replay.tab_size == 8
        assert config.replay.max_segments is None

    def test_keymaps(self) -> None:
        assert HyperpwnConfig().keymaps() == {
            "pwn:replayprev": "ctrl+shift+pageup",
            "pwn:replaynext": "ctrl+shift+pagedown",
        }


class TestMerge:
    def test_partial_hotkeys_keep_other_default(self) -> None:
        config = HyperpwnConfig.merge({"hotkeys": {"prev": "alt+left"}})
        assert config.hotkeys.prev == "alt+left"
        assert config.hotkeys.next == "ctrl+shift+pagedown"

    def test_header_style_merged_key_by_key(self) -> None:
        config = HyperpwnConfig.merge({"header_style": {"fontSize": "12px", "color": "red"}})
        assert config.header_style["fontSize"] == "12px"
        assert config.header_style["color"] == "red"
        assert config.header_style["position"] == "absolute"

    def test_none_gives_defaults(self) -> None:
        assert HyperpwnConfig.merge(None) == HyperpwnConfig()

    def test_invalid_value(self) -> None:
        with pytest.raises(ValidationError):
            HyperpwnConfig.merge({"replay": {"max_segments": 0}})


class TestLoad:
    def test_missing_file_gives_defaults(self) -> None:
        assert HyperpwnConfig.load("does-not-exist.json") == HyperpwnConfig()

    def test_file_with_hyperpwn_section(self, tmp_path) -> None:
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps({"fontSize": 14, "hyperpwn": {"show_headers": False}})
        )
        config = HyperpwnConfig.load(str(path))
        assert config.show_headers is False

    def test_flat_file(self, tmp_path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"replay": {"tab_size": 4}}))
        config = HyperpwnConfig.load(str(path))
        assert config.replay.tab_size == 4
        assert config.replay.default_columns == 80

    def test_env_overrides_file(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"replay": {"max_segments": 10}}))
        monkeypatch.setenv("HYPERPWN_MAX_SEGMENTS", "25")
        monkeypatch.setenv("HYPERPWN_COLUMNS", "132")
        monkeypatch.setenv("HYPERPWN_SHOW_HEADERS", "false")
        config = HyperpwnConfig.load(str(path))
        assert config.replay.max_segments == 25
        assert config.replay.default_columns == 132
        assert config.show_headers is False
