"""JSON prompt catalog for the report composer, the relay and suggestion presets.

Entries are addressed by dotted keys (``composer.context_entry``) and rendered
with ``string.Template``. The file is re-read when its mtime changes.
"""
from __future__ import annotations

import json
from pathlib import Path
from string import Template
from typing import Any

PROMPTS_PATH = Path(__file__).resolve().parents[1] / "prompts" / "prompts.json"
REQUIRED_SECTIONS = ("composer", "relay", "suggestions")


class PromptCatalog:
    def __init__(self, path: Path):
        self.path = path
        self._payload: dict[str, Any] | None = None
        self._mtime_ns: int | None = None

    def load(self) -> dict[str, Any]:
        mtime_ns = self.path.stat().st_mtime_ns
        if self._payload is not None and self._mtime_ns == mtime_ns:
            return self._payload

        payload = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError("Prompt catalog must be a JSON object.")
        missing = [name for name in REQUIRED_SECTIONS if name not in payload]
        if missing:
            raise ValueError(f"Prompt catalog is missing sections: {', '.join(missing)}")
        self._payload = payload
        self._mtime_ns = mtime_ns
        return payload

    def entry(self, key: str) -> Any:
        node: Any = self.load()
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                raise KeyError(f"Prompt key not found: {key}")
            node = node[part]
        return node

    def render(self, key: str, **values: Any) -> str:
        entry = self.entry(key)
        if not isinstance(entry, str):
            raise TypeError(f"Prompt key must map to a string: {key}")
        try:
            return Template(entry).substitute(**values)
        except KeyError as exc:
            missing = str(exc.args[0])
            raise KeyError(f"Missing template value '{missing}' for prompt '{key}'") from exc

    def items(self, key: str) -> list[dict[str, str]]:
        entry = self.entry(key)
        if not isinstance(entry, list):
            raise TypeError(f"Prompt key must map to a list: {key}")
        return [dict(item) for item in entry]

    def reset(self) -> None:
        self._payload = None
        self._mtime_ns = None


_catalog = PromptCatalog(PROMPTS_PATH)


def render_prompt(key: str, **values: Any) -> str:
    return _catalog.render(key, **values)


def prompt_list(key: str) -> list[dict[str, str]]:
    """Return a list-valued catalog entry (e.g. suggestion presets)."""
    return _catalog.items(key)


def clear_prompt_cache() -> None:
    _catalog.reset()
