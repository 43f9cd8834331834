from __future__ import annotations

import pytest

from lightcone_basis.hamiltonian import MatrixAssembler, MatrixElementEngine


@pytest.fixture
def engine() -> MatrixElementEngine:
    return MatrixElementEngine()


@pytest.fixture
def assembler(engine) -> MatrixAssembler:
    return MatrixAssembler(engine=engine, max_workers=1)
