"""Configuration — Pydantic models for hyperpwn settings."""

from __future__ import annotations

import json
import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class HotkeyConfig(BaseModel):
    """Key bindings for stepping through the shared replay history."""

    prev: str = Field(default="ctrl+shift+pageup")
    next: str = Field(default="ctrl+shift+pagedown")


class ReplayConfig(BaseModel):
    """How captured context sections are stored and re-rendered."""

    default_columns: int = Field(
        default=80, gt=0, description="Pane width used until the host reports a resize"
    )
    tab_size: int = Field(default=8, gt=0)
    max_segments: int | None = Field(
        default=None,
        gt=0,
        description="Sections kept per session; unset keeps the whole history",
    )


def _default_header_style() -> dict[str, Any]:
    return {"position": "absolute", "top": 0, "right": 0, "fontSize": "10px"}


class HyperpwnConfig(BaseModel):
    """Top-level hyperpwn configuration."""

    hotkeys: HotkeyConfig = Field(default_factory=HotkeyConfig)
    show_headers: bool = Field(
        default=True, description="Label each pane with the view it shows"
    )
    header_style: dict[str, Any] = Field(default_factory=_default_header_style)
    replay: ReplayConfig = Field(default_factory=ReplayConfig)

    def keymaps(self) -> dict[str, str]:
        """Host command name -> key binding."""
        return {
            "pwn:replayprev": self.hotkeys.prev,
            "pwn:replaynext": self.hotkeys.next,
        }

    @classmethod
    def merge(cls, overrides: dict[str, Any] | None) -> HyperpwnConfig:
        """Build a config from partial settings layered over the defaults.

        Nested mappings (``hotkeys``, ``header_style``, ``replay``) are
        merged key by key, so overriding one hotkey keeps the other.
        """
        data = cls().model_dump()
        if overrides:
            _deep_merge(data, overrides)
        return cls.model_validate(data)

    @classmethod
    def load(cls, config_path: str | None = None) -> HyperpwnConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults. A config file may hold
        the settings at the top level or under a ``hyperpwn`` key, the way
        a host application's own config would carry them.

        Env vars:
            HYPERPWN_SHOW_HEADERS  - "0"/"false" hides pane headers
            HYPERPWN_MAX_SEGMENTS  - Cap on sections kept per session
            HYPERPWN_TAB_SIZE      - Tab stop width used when replaying
            HYPERPWN_COLUMNS       - Default pane width
        """
        load_dotenv(override=True)

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                config_data = json.load(f)
            if isinstance(config_data.get("hyperpwn"), dict):
                config_data = config_data["hyperpwn"]

        env_show_headers = os.environ.get("HYPERPWN_SHOW_HEADERS")
        if env_show_headers:
            config_data["show_headers"] = env_show_headers.lower() not in (
                "0",
                "false",
                "no",
                "off",
            )

        replay = dict(config_data.get("replay", {}))

        env_max_segments = os.environ.get("HYPERPWN_MAX_SEGMENTS")
        if env_max_segments:
            replay["max_segments"] = int(env_max_segments)

        env_tab_size = os.environ.get("HYPERPWN_TAB_SIZE")
        if env_tab_size:
            replay["tab_size"] = int(env_tab_size)

        env_columns = os.environ.get("HYPERPWN_COLUMNS")
        if env_columns:
            replay["default_columns"] = int(env_columns)

        if replay:
            config_data["replay"] = replay

        return cls.merge(config_data)


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> None:
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
