from __future__ import annotations

import json
from pathlib import Path
from typing import List

import yaml

from downlink.world.schema import SaveGame


def _read_yaml(path: Path) -> List[object]:
    if not path.exists():
        raise FileNotFoundError(f"Expected YAML data file at {path}")
    with path.open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or []
        if not isinstance(payload, list):
            raise ValueError(f"Expected list at {path}, got {type(payload).__name__}")
        return payload


def load_dictionary(path: Path) -> List[str]:
    words: List[str] = []
    for row in _read_yaml(path):
        word = str(row).strip()
        if word:
            words.append(word)
    if not words:
        raise ValueError(f"Dictionary at {path} is empty")
    return words


def load_company_names(path: Path) -> List[str]:
    names: List[str] = []
    for row in _read_yaml(path):
        if isinstance(row, dict):
            name = str(row.get("name", "")).strip()
        else:
            name = str(row).strip()
        if name:
            names.append(name)
    if len(names) < 2:
        raise ValueError(f"Need at least two companies at {path} to pair targets with sponsors")
    return names


def load_save(path: Path) -> SaveGame:
    if not path.exists():
        raise FileNotFoundError(f"Expected save file at {path}")
    with path.open("r", encoding="utf-8") as handle:
        return SaveGame.model_validate(json.load(handle))


def write_save(save: SaveGame, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(save.model_dump_json(indent=2), encoding="utf-8")
    return path
