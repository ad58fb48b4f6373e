"""Filesystem implementations for infrastructure.

Usage example:
    from pathlib import Path

    import pandas as pd

    from employer_rating_engine.infrastructure.filesystem import LocalFileSystem

    fs = LocalFileSystem()
    fs.append_csv(pd.DataFrame({"employer_id": ["employer-1"]}), Path("data/ratings.csv"))
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, cast

import pandas as pd

from ..protocols import FileSystem


class LocalFileSystem(FileSystem):
    """Local filesystem implementation; CSV cells are read as strings."""

    def read_csv(self, path: Path) -> pd.DataFrame:
        return pd.read_csv(path, dtype=str, keep_default_na=False).fillna("")

    def write_csv(self, df: pd.DataFrame, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(path, index=False)

    def append_csv(self, df: pd.DataFrame, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        write_header = not path.exists()
        df.to_csv(path, mode="a", header=write_header, index=False)

    def read_json(self, path: Path) -> dict[str, Any]:
        return cast(dict[str, Any], json.loads(path.read_text(encoding="utf-8")))

    def write_json(self, data: Mapping[str, object], path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    def read_text(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")

    def exists(self, path: Path) -> bool:
        return path.exists()
