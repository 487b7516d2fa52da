import json
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from rollout.constants import MANIFEST_JSON_FORMAT


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def _load_json(filepath: Path) -> Any:
    """Loads a JSON file."""
    with open(filepath, "r", encoding="utf-8") as file:
        return json.load(file)


def _write_json(data: Any, filepath: Path) -> Path:
    """
    Writes `data` as pretty-printed JSON. The content goes to a temporary
    sibling file first and is then renamed over `filepath`.
    """
    filepath.parent.mkdir(parents=True, exist_ok=True)
    temp_filepath = filepath.with_name(f"{filepath.name}.tmp")
    with open(temp_filepath, "w", encoding="utf-8") as file:
        json.dump(data, file, **MANIFEST_JSON_FORMAT)
        file.write("\n")
        file.flush()
        os.fsync(file.fileno())
    temp_filepath.replace(filepath)
    return filepath


def manifest_filepath(directory: Path, stem: str, chain_id: Optional[int] = None) -> Path:
    """
    Returns the manifest path for `stem` in `directory`. The chain-qualified
    file (e.g. `.data.80002.json`) is preferred when it exists.
    """
    directory = Path(directory)
    if chain_id is not None:
        chain_filepath = directory / f".{stem}.{chain_id}.json"
        if chain_filepath.exists():
            return chain_filepath
    return directory / f".{stem}.json"
