"""Persistence helpers for assembled matrices."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping

import numpy as np
from scipy.sparse import issparse, load_npz, save_npz


class MatrixCache:
    """Cache dense/sparse matrices on disk, keyed by name and run metadata.

    Dense arrays of one run share ``matrices.npz``; sparse matrices are stored
    one file each as ``<key>.sparse.npz``.
    """

    dense_filename = "matrices.npz"
    metadata_filename = "metadata.json"
    sparse_suffix = ".sparse.npz"

    def __init__(self, base_path: Path) -> None:
        self.base_path = Path(base_path)

    def _resolve(self, name: str) -> Path:
        return self.base_path / name

    def available(self, name: str, *, metadata: Mapping[str, object]) -> bool:
        path = self._resolve(name)
        meta_file = path / self.metadata_filename
        if not meta_file.exists():
            return False
        try:
            with meta_file.open("r", encoding="utf-8") as handle:
                stored = json.load(handle)
        except json.JSONDecodeError:
            return False
        return stored == json.loads(json.dumps(dict(metadata)))

    def load(self, name: str) -> Dict[str, Any]:
        path = self._resolve(name)
        if not path.exists():
            raise FileNotFoundError(f"No cached matrices named {name!r} in {self.base_path}.")
        matrices: Dict[str, Any] = {}
        dense_file = path / self.dense_filename
        if dense_file.exists():
            with np.load(dense_file) as dense:
                for key in dense.files:
                    matrices[key] = dense[key]
        for file in sorted(path.glob(f"*{self.sparse_suffix}")):
            matrices[file.name[: -len(self.sparse_suffix)]] = load_npz(file)
        return matrices

    def save(
        self,
        name: str,
        *,
        matrices: Mapping[str, Any],
        metadata: Mapping[str, object],
    ) -> None:
        path = self._resolve(name)
        path.mkdir(parents=True, exist_ok=True)
        dense: Dict[str, np.ndarray] = {}
        for key, matrix in matrices.items():
            if matrix is None:
                continue
            if issparse(matrix):
                save_npz(path / f"{key}{self.sparse_suffix}", matrix.tocsr())
            else:
                dense[key] = np.asarray(matrix)
        if dense:
            np.savez(path / self.dense_filename, **dense)
        with (path / self.metadata_filename).open("w", encoding="utf-8") as handle:
            json.dump(dict(metadata), handle, ensure_ascii=False,
                      indent=2, sort_keys=True)

    def drop(self, name: str) -> None:
        path = self._resolve(name)
        if not path.exists():
            return
        self._remove_tree(path)

    def _remove_tree(self, root: Path) -> None:
        for item in root.iterdir():
            if item.is_dir():
                self._remove_tree(item)
            else:
                item.unlink()
        root.rmdir()
