"""结果可视化。"""

from .plotting import MatrixHeatmapPlotter, plot_matrix

__all__ = [
    "MatrixHeatmapPlotter",
    "plot_matrix",
]
