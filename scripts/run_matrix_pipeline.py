"""生成单项式基组并装配内积、质量、动能与相互作用矩阵。"""
from __future__ import annotations

import argparse
from pathlib import Path

import numpy as np

from lightcone_basis.basis import generate_basis
from lightcone_basis.discretization import MuDiscretization
from lightcone_basis.hamiltonian import (
    HamiltonianParameters,
    MatrixAssembler,
    MatrixElementEngine,
    MatrixKind,
    assemble_hamiltonian,
)
from lightcone_basis.io import MatrixCache
from lightcone_basis.reporting import plot_matrix

_SAME_N_KINDS = [k.value for k in MatrixKind if k is not MatrixKind.N_PLUS_2]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Assemble light-front matrix elements on a monomial basis.")
    parser.add_argument("--num-particles", type=int, default=2,
                        help="Particle count of the basis monomials.")
    parser.add_argument("--degree", type=int, default=4,
                        help="Total degree sum(pm + pt) of every monomial.")
    parser.add_argument("--parity", choices=["even", "odd", "all"], default="even",
                        help="Transverse parity sector to keep.")
    parser.add_argument("--partitions", type=int, default=4,
                        help="Number of mu partitions for discretized kinds.")
    parser.add_argument("--kinds", nargs="+", choices=_SAME_N_KINDS,
                        default=[MatrixKind.INNER.value, MatrixKind.MASS.value],
                        help="Matrix kinds to assemble on the basis.")
    parser.add_argument("--hamiltonian", action="store_true",
                        help="Also assemble the block Hamiltonian for n, n-2, ... >= 2.")
    parser.add_argument("--msq", type=float, default=1.0,
                        help="Bare mass squared.")
    parser.add_argument("--coupling", type=float, default=0.0,
                        help="Quartic coupling lambda.")
    parser.add_argument("--cutoff", type=float, default=1.0,
                        help="Energy cutoff Lambda.")
    parser.add_argument("--quadrature-order", type=int, default=8,
                        help="Gauss-Legendre points per mu partition.")
    parser.add_argument("--use-cache", dest="use_cache", action="store_true",
                        default=True, help="Load/save cached matrices when available (default: on).")
    parser.add_argument("--no-cache", dest="use_cache",
                        action="store_false", help="Disable cache usage for this run.")
    parser.add_argument("--refresh-cache", action="store_true",
                        help="Force recomputation even if cached data exist.")
    parser.add_argument("--cache-dir", type=Path, default=Path("cache"),
                        help="Directory used to store cached matrices.")
    parser.add_argument("--cache-key", default=None,
                        help="Cache subdirectory name (default: derived from the run parameters).")
    parser.add_argument("--plot-dir", type=Path, default=None,
                        help="Write a heat map of every assembled matrix into this directory.")
    parser.add_argument("--progress", action="store_true",
                        help="Display a progress bar during matrix assembly.")
    parser.add_argument("--verbose", action="store_true",
                        help="Print assembly timing summaries.")
    parser.add_argument("--check-symmetry", action="store_true",
                        help="Recompute every pair with the operands swapped and report the deviation.")
    parser.add_argument("--lenient", action="store_true",
                        help="Warn instead of failing on non-finite matrix elements.")
    parser.add_argument("--assembly-workers", type=int, default=None,
                        help="Number of worker processes for matrix assembly (default: auto).")
    parser.add_argument("--assembly-chunk-rows", type=int, default=None,
                        help="Number of consecutive matrix rows per worker chunk.")
    return parser.parse_args()


def _parity(value: str):
    return None if value == "all" else value


def _pairing_asymmetry(engine: MatrixElementEngine, basis, kind: str, partitions: int) -> float:
    """对 ``i < j`` 交换两侧重新计算，返回最大相对偏差。"""

    kind = MatrixKind(kind)
    worst = 0.0
    for i in range(len(basis)):
        for j in range(i + 1, len(basis)):
            a, b = basis[i], basis[j]
            if kind is MatrixKind.INTERACTION:
                forward = engine.interaction_block(a, b, partitions)
                backward = engine.interaction_block(b, a, partitions).T
            else:
                forward = np.asarray(engine.element(a, b, kind))
                backward = np.asarray(engine.element(b, a, kind))
            scale = max(float(np.max(np.abs(forward))), float(np.max(np.abs(backward))))
            if scale > 0.0:
                worst = max(worst, float(np.max(np.abs(forward - backward))) / scale)
    return worst


def main() -> None:
    args = parse_args()
    parity = _parity(args.parity)

    engine = MatrixElementEngine(
        discretization=MuDiscretization(quadrature_order=args.quadrature_order),
        strict=not args.lenient,
    )
    assembler = MatrixAssembler(
        engine=engine,
        max_workers=args.assembly_workers,
        rows_per_chunk=args.assembly_chunk_rows,
        verbose=args.verbose,
    )
    basis = generate_basis(args.num_particles, args.degree, parity=parity)
    print(f"Basis ({args.num_particles} particles, degree {args.degree}, "
          f"parity {args.parity}): {len(basis)} monomials")
    for index, mono in enumerate(basis):
        print(f"  [{index:3d}] {mono}")
    if len(basis) == 0:
        print("Nothing to assemble.")
        return

    params = HamiltonianParameters(msq=args.msq, coupling=args.coupling, cutoff=args.cutoff)
    metadata = {
        "num_particles": args.num_particles,
        "degree": args.degree,
        "parity": args.parity,
        "partitions": args.partitions,
        "kinds": sorted(args.kinds),
        "hamiltonian": args.hamiltonian,
        "msq": args.msq,
        "coupling": args.coupling,
        "cutoff": args.cutoff,
        "quadrature_order": args.quadrature_order,
        "basis_size": len(basis),
    }
    cache_key = args.cache_key or (
        f"n{args.num_particles}_d{args.degree}_{args.parity}_p{args.partitions}"
    )

    cache = MatrixCache(args.cache_dir)
    if args.use_cache and not args.refresh_cache and cache.available(cache_key, metadata=metadata):
        print(f"Loading cached matrices from {args.cache_dir / cache_key}")
        matrices = cache.load(cache_key)
    else:
        progress = True if args.progress else None
        matrices = {}
        for kind in args.kinds:
            matrices[kind] = assembler.assemble(
                basis, kind, partitions=args.partitions, progress=progress)

        if args.hamiltonian:
            bases = {
                n: generate_basis(n, args.degree, parity=parity)
                for n in range(args.num_particles, 1, -2)
            }
            matrices["hamiltonian"] = assemble_hamiltonian(
                assembler, bases, args.partitions, params, progress=progress)

        if args.use_cache:
            cache.save(cache_key, matrices=matrices, metadata=metadata)

    for name, matrix in matrices.items():
        dense = matrix.toarray() if hasattr(matrix, "toarray") else np.asarray(matrix)
        diagonal = np.diag(dense)
        print(f"\n{name}: shape {dense.shape}")
        if args.check_symmetry and name in _SAME_N_KINDS:
            asymmetry = _pairing_asymmetry(engine, basis, name, args.partitions)
            print(f"  max relative |M(a,b) - M(b,a)^T| = {asymmetry:.3e}")
        if diagonal.size:
            print(f"  diagonal range: [{diagonal.min():.6e}, {diagonal.max():.6e}]")
        if engine.nonfinite_elements:
            print(f"  non-finite elements recorded: {len(engine.nonfinite_elements)}")

        if args.plot_dir is not None:
            args.plot_dir.mkdir(parents=True, exist_ok=True)
            blocks = None if name == MatrixKind.INNER.value else args.partitions
            plot_matrix(
                dense,
                title=f"{name} (n={args.num_particles}, degree={args.degree})",
                output_path=str(args.plot_dir / f"{cache_key}_{name}.png"),
                partitions=blocks,
            )


if __name__ == "__main__":
    main()
