"""整个基组上的矩阵装配，支持多进程按行分块并行。"""
from __future__ import annotations

from dataclasses import dataclass, field
import math
import multiprocessing as mp
import os
import sys
import time
from typing import Dict, Iterable, List, Optional, Tuple, Union

import numpy as np

from lightcone_basis.basis.monomial import Basis, Monomial, as_basis
from lightcone_basis.hamiltonian.elements import MatrixElementEngine
from lightcone_basis.hamiltonian.operators import MatrixKind

_Entry = Union[float, np.ndarray]


@dataclass
class _ChunkResult:
    chunk_id: int
    entries: Dict[Tuple[int, int], _Entry]
    time_compute: float
    time_overhead: float
    pairs_processed: int
    nonfinite: List[Tuple[str, tuple, tuple, float]] = field(default_factory=list)


@dataclass
class _WorkerPayload:
    engine: MatrixElementEngine
    rows: Tuple[Monomial, ...]
    cols: Tuple[Monomial, ...]
    kind: MatrixKind
    partitions: Optional[int]
    symmetric: bool


_WORKER_PAYLOAD: Optional[_WorkerPayload] = None


@dataclass
class _PairProgress:
    """按已完成的基矢对计数，在 stderr 上原地刷新一行；百分比变化时才重绘。"""

    total: int
    desc: str
    done: int = 0
    _shown: int = field(default=-1, repr=False)
    _start: float = field(default_factory=time.perf_counter, repr=False)

    def __post_init__(self) -> None:
        self.total = max(int(self.total), 0)

    def advance(self, pairs: int = 1) -> None:
        self.done = min(self.done + pairs, self.total)
        percent = self.done * 100 // self.total if self.total else 100
        if percent != self._shown:
            self._shown = percent
            self._render(percent)

    def finish(self) -> None:
        self._render(100)
        sys.stderr.write("\n")
        sys.stderr.flush()

    def _render(self, percent: int) -> None:
        elapsed = time.perf_counter() - self._start
        sys.stderr.write(
            f"\r{self.desc}: {percent:3d}% ({self.done}/{self.total} pairs, {elapsed:.1f}s)"
        )
        sys.stderr.flush()


def _evaluate(
    engine: MatrixElementEngine,
    a: Monomial,
    b: Monomial,
    kind: MatrixKind,
    partitions: Optional[int],
) -> _Entry:
    if kind is MatrixKind.INTERACTION:
        return engine.interaction_block(a, b, partitions)
    if kind is MatrixKind.N_PLUS_2:
        return engine.n_plus_2_block(a, b, partitions)
    return engine.element(a, b, kind)


def _assemble_rows(
    payload: _WorkerPayload,
    row_start: int,
    row_end: int,
    reporter: Optional[_PairProgress],
    chunk_id: int,
) -> _ChunkResult:
    entries: Dict[Tuple[int, int], _Entry] = {}
    time_compute = 0.0
    time_overhead = 0.0
    pairs_processed = 0
    chunk_start = time.perf_counter()
    flagged_before = len(payload.engine.nonfinite_elements)

    for i in range(row_start, row_end):
        col_start = i if payload.symmetric else 0
        for j in range(col_start, len(payload.cols)):
            t0 = time.perf_counter()
            entries[(i, j)] = _evaluate(
                payload.engine,
                payload.rows[i],
                payload.cols[j],
                payload.kind,
                payload.partitions,
            )
            time_compute += time.perf_counter() - t0
            pairs_processed += 1
            if reporter is not None:
                reporter.advance()

    time_overhead = time.perf_counter() - chunk_start - time_compute
    return _ChunkResult(
        chunk_id=chunk_id,
        entries=entries,
        time_compute=time_compute,
        time_overhead=time_overhead,
        pairs_processed=pairs_processed,
        nonfinite=list(payload.engine.nonfinite_elements[flagged_before:]),
    )


@dataclass
class MatrixAssembler:
    """对基组中每一对单项式调用 :class:`MatrixElementEngine` 并拼装矩阵。

    对称矩阵只计算 ``i <= j`` 的元素，其余通过复制（分块时取转置）得到。
    任何结构性错误都会中止整个装配。
    """

    engine: MatrixElementEngine = field(default_factory=MatrixElementEngine)
    max_workers: Optional[int] = None
    rows_per_chunk: Optional[int] = None
    verbose: bool = False

    # ------------------------------------------------------------------
    # 公共接口
    # ------------------------------------------------------------------
    def assemble(
        self,
        basis: Union[Basis, Iterable[Monomial]],
        kind: Union[MatrixKind, str],
        *,
        partitions: Optional[int] = None,
        progress: bool | str | None = None,
    ) -> np.ndarray:
        kind = MatrixKind(kind)
        if kind is MatrixKind.INNER:
            return self.gram_matrix(basis, progress=progress)
        if kind is MatrixKind.MASS:
            return self.mass_matrix(basis, partitions, progress=progress)
        if kind is MatrixKind.KINETIC:
            return self.kinetic_matrix(basis, partitions, progress=progress)
        if kind is MatrixKind.INTERACTION:
            return self.interaction_matrix(basis, partitions, progress=progress)
        raise ValueError("n -> n+2 矩阵需要两个基组，请调用 n_plus_2_matrix。")

    def gram_matrix(self, basis, *, progress: bool | str | None = None) -> np.ndarray:
        return self._scalar_matrix(as_basis(basis), MatrixKind.INNER, progress)

    def mass_matrix(
        self,
        basis,
        partitions: Optional[int] = None,
        *,
        progress: bool | str | None = None,
    ) -> np.ndarray:
        matrix = self._scalar_matrix(as_basis(basis), MatrixKind.MASS, progress)
        if partitions is None:
            return matrix
        return np.kron(matrix, self.engine.discretization.direct(partitions))

    def kinetic_matrix(
        self,
        basis,
        partitions: int,
        *,
        progress: bool | str | None = None,
    ) -> np.ndarray:
        if partitions is None:
            raise ValueError("动能矩阵需要指定 partitions。")
        matrix = self._scalar_matrix(as_basis(basis), MatrixKind.KINETIC, progress)
        return np.kron(matrix, self.engine.discretization.kinetic(partitions))

    def interaction_matrix(
        self,
        basis,
        partitions: int,
        *,
        progress: bool | str | None = None,
    ) -> np.ndarray:
        if partitions is None:
            raise ValueError("相互作用矩阵需要指定 partitions。")
        basis = as_basis(basis)
        entries = self._compute(basis, basis, MatrixKind.INTERACTION, partitions, True, progress)
        size = len(basis) * partitions
        matrix = np.zeros((size, size), dtype=float)
        for (i, j), block in entries.items():
            rows = slice(i * partitions, (i + 1) * partitions)
            cols = slice(j * partitions, (j + 1) * partitions)
            matrix[rows, cols] = block
            if i != j:
                matrix[cols, rows] = block.T
        return matrix

    def n_plus_2_matrix(
        self,
        basis_a,
        basis_b,
        partitions: int,
        *,
        progress: bool | str | None = None,
    ) -> np.ndarray:
        """``basis_a`` 有 ``n`` 个粒子、``basis_b`` 有 ``n+2`` 个粒子，返回矩形矩阵。"""

        if partitions is None:
            raise ValueError("n -> n+2 矩阵需要指定 partitions。")
        basis_a = as_basis(basis_a)
        basis_b = as_basis(basis_b)
        entries = self._compute(basis_a, basis_b, MatrixKind.N_PLUS_2, partitions, False, progress)
        matrix = np.zeros((len(basis_a) * partitions, len(basis_b) * partitions), dtype=float)
        for (i, j), block in entries.items():
            matrix[
                i * partitions:(i + 1) * partitions,
                j * partitions:(j + 1) * partitions,
            ] = block
        return matrix

    # ------------------------------------------------------------------
    # 内部实现
    # ------------------------------------------------------------------
    def _scalar_matrix(
        self,
        basis: Basis,
        kind: MatrixKind,
        progress: bool | str | None,
    ) -> np.ndarray:
        entries = self._compute(basis, basis, kind, None, True, progress)
        size = len(basis)
        matrix = np.zeros((size, size), dtype=float)
        for (i, j), value in entries.items():
            matrix[i, j] = value
            if i != j:
                matrix[j, i] = value
        return matrix

    def _compute(
        self,
        rows: Basis,
        cols: Basis,
        kind: MatrixKind,
        partitions: Optional[int],
        symmetric: bool,
        progress: bool | str | None,
    ) -> Dict[Tuple[int, int], _Entry]:
        if isinstance(progress, str):
            progress_desc = progress
            show_progress = True
        elif isinstance(progress, bool) or progress is None:
            progress_desc = f"Assembling {kind.value} matrix"
            show_progress = bool(progress)
        else:
            raise TypeError("progress must be a bool, str, or None")

        n_rows = len(rows)
        n_cols = len(cols)
        if symmetric:
            total_pairs = n_rows * (n_rows + 1) // 2
        else:
            total_pairs = n_rows * n_cols
        reporter = _PairProgress(total_pairs, progress_desc) if show_progress else None

        payload = _WorkerPayload(
            engine=self.engine,
            rows=tuple(rows),
            cols=tuple(cols),
            kind=kind,
            partitions=partitions,
            symmetric=symmetric,
        )
        worker_count = self._resolve_worker_count()
        used_parallel = worker_count > 1 and n_rows > 1

        chunk_results: List[_ChunkResult] = []
        time_start = time.perf_counter()
        try:
            if not used_parallel:
                chunk_results.append(_assemble_rows(payload, 0, n_rows, reporter, chunk_id=0))
            else:
                chunk_results.extend(
                    self._assemble_parallel(payload, n_rows, reporter, worker_count)
                )
        finally:
            if reporter is not None:
                reporter.finish()

        total_elapsed = time.perf_counter() - time_start
        if self.verbose and total_elapsed > 0.0:
            time_compute = sum(chunk.time_compute for chunk in chunk_results)
            time_overhead = sum(chunk.time_overhead for chunk in chunk_results)
            print(f"\n--- {kind.value} assembly timing (seconds) ---")
            print(
                f"  Element compute   : {time_compute:10.2f}"
                f" ({time_compute / total_elapsed:6.2%})"
            )
            print(
                f"  Python overhead   : {time_overhead:10.2f}"
                f" ({time_overhead / total_elapsed:6.2%})"
            )
            print(f"  Total elapsed     : {total_elapsed:10.2f} (100.00%)")
            if used_parallel:
                print("  (timings reflect summed worker CPU seconds)")
            else:
                sizes = ", ".join(f"{k}={v}" for k, v in self.engine.cache.sizes().items())
                print(f"  Cache entries     : {sizes}")

        entries: Dict[Tuple[int, int], _Entry] = {}
        for chunk in sorted(chunk_results, key=lambda c: c.chunk_id):
            entries.update(chunk.entries)
            if used_parallel:
                # 工作进程持有引擎副本，非有限值记录需要带回主进程
                self.engine.nonfinite_elements.extend(chunk.nonfinite)
        return entries

    def _assemble_parallel(
        self,
        payload: _WorkerPayload,
        n_rows: int,
        reporter: Optional[_PairProgress],
        worker_count: int,
    ) -> List[_ChunkResult]:
        chunks = self._make_row_chunks(n_rows, worker_count)
        if not chunks:
            return []

        # 默认启动方式（Linux 为 fork）
        try:
            ctx = mp.get_context(None)
        except ValueError:
            ctx = mp.get_context("spawn")

        chunk_tasks = list(enumerate(chunks))
        chunk_results: List[_ChunkResult] = []
        with ctx.Pool(
            processes=worker_count,
            initializer=_parallel_worker_init,
            initargs=(payload,),
        ) as pool:
            for chunk in pool.imap_unordered(
                _parallel_process_chunk, chunk_tasks, chunksize=1
            ):
                chunk_results.append(chunk)
                if reporter is not None and chunk.pairs_processed:
                    reporter.advance(chunk.pairs_processed)

        return chunk_results

    def _resolve_worker_count(self) -> int:
        if self.max_workers is not None:
            return max(1, int(self.max_workers))
        env_value = os.getenv("LCB_ASSEMBLY_WORKERS")
        if env_value:
            try:
                value = int(env_value)
            except ValueError:
                value = 0
            if value >= 1:
                return value
        cpu_count = os.cpu_count() or 1
        return max(1, cpu_count)

    def _make_row_chunks(self, size: int, worker_count: int) -> List[Tuple[int, int]]:
        if size <= 0:
            return []
        if worker_count <= 0:
            worker_count = 1
        if self.rows_per_chunk is not None and self.rows_per_chunk > 0:
            row_span = int(self.rows_per_chunk)
        else:
            row_span = max(1, math.ceil(size / (worker_count * 4)))

        chunks: List[Tuple[int, int]] = []
        start = 0
        while start < size:
            end = min(size, start + row_span)
            chunks.append((start, end))
            start = end
        return chunks


def _parallel_worker_init(payload: _WorkerPayload) -> None:
    global _WORKER_PAYLOAD
    _WORKER_PAYLOAD = payload


def _parallel_process_chunk(task: Tuple[int, Tuple[int, int]]) -> _ChunkResult:
    if _WORKER_PAYLOAD is None:
        raise RuntimeError("Worker payload is not initialized.")
    chunk_id, (start, end) = task
    return _assemble_rows(_WORKER_PAYLOAD, start, end, reporter=None, chunk_id=chunk_id)
