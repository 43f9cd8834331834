"""矩阵结构的热图输出。"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
from scipy.sparse import issparse


@dataclass
class MatrixHeatmapPlotter:
    """绘制 ``log10|M|`` 热图，零元素显示为空白。"""

    floor: float = 1e-16
    cmap: str = "viridis"

    def plot(self, matrix, *, title: str, output_path: str | None = None, partitions: Optional[int] = None) -> None:
        """绘制矩阵热图并可选保存；给出 ``partitions`` 时画出单项式块的分界线。"""
        dense = matrix.toarray() if issparse(matrix) else np.asarray(matrix, dtype=float)
        magnitude = np.abs(dense)
        with np.errstate(divide="ignore"):
            image = np.where(magnitude > self.floor, np.log10(magnitude), np.nan)

        fig, ax = plt.subplots(figsize=(6, 5))
        mesh = ax.imshow(image, cmap=self.cmap, interpolation="nearest")
        fig.colorbar(mesh, ax=ax, label="log10 |M_ij|")
        if partitions and partitions > 1:
            for edge in range(partitions, max(dense.shape), partitions):
                if edge < dense.shape[1]:
                    ax.axvline(edge - 0.5, color="white", lw=0.5, alpha=0.6)
                if edge < dense.shape[0]:
                    ax.axhline(edge - 0.5, color="white", lw=0.5, alpha=0.6)
        ax.set_xlabel("列")
        ax.set_ylabel("行")
        ax.set_title(title)

        if output_path:
            fig.savefig(output_path, dpi=300, bbox_inches="tight")
        plt.close(fig)


def plot_matrix(matrix, *, title: str, output_path: str | None = None, partitions: Optional[int] = None) -> None:
    """便捷函数，内部调用 :class:`MatrixHeatmapPlotter`。"""
    plotter = MatrixHeatmapPlotter()
    plotter.plot(matrix, title=title, output_path=output_path, partitions=partitions)
