"""单项式基矢与基组容器。"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Sequence, Tuple, overload


@dataclass(frozen=True, order=True)
class Particle:
    """单个粒子的指数对。

    Parameters
    ----------
    pm : int
        纵向动量指数，已包含 Dirichlet 边界要求的一次幂，因此 ``pm >= 1``。
    pt : int
        横向动量指数，``pt >= 0``。
    """

    pm: int
    pt: int = 0

    def __post_init__(self) -> None:
        if int(self.pm) < 1:
            raise ValueError("纵向指数 pm 必须不小于 1。")
        if int(self.pt) < 0:
            raise ValueError("横向指数 pt 必须非负。")


@dataclass(frozen=True)
class Monomial:
    r"""``\prod_i x_i^{pm_i} k_i^{pt_i}`` 型单项式，附带实数系数。

    粒子顺序是有意义的（决定了指数键），但 ``(pm, pt)`` 相同的粒子在
    简并度计数中视为全同粒子。
    """

    particles: Tuple[Particle, ...]
    coefficient: float = 1.0

    def __post_init__(self) -> None:
        particles = tuple(
            p if isinstance(p, Particle) else Particle(*p) for p in self.particles
        )
        if not particles:
            raise ValueError("单项式至少需要一个粒子。")
        object.__setattr__(self, "particles", particles)
        object.__setattr__(self, "coefficient", float(self.coefficient))

    @classmethod
    def from_exponents(
        cls,
        pm: Sequence[int],
        pt: Sequence[int] | None = None,
        coefficient: float = 1.0,
    ) -> "Monomial":
        """由纵向、横向指数列表构造单项式；``pt`` 缺省时全为零。"""

        if pt is None:
            pt = [0] * len(pm)
        if len(pm) != len(pt):
            raise ValueError("pm 与 pt 长度不一致。")
        return cls(
            particles=tuple(Particle(int(a), int(b)) for a, b in zip(pm, pt)),
            coefficient=coefficient,
        )

    @property
    def n_particles(self) -> int:
        return len(self.particles)

    @property
    def degree(self) -> int:
        return sum(p.pm + p.pt for p in self.particles)

    @property
    def transverse_degree(self) -> int:
        return sum(p.pt for p in self.particles)

    def count_identical(self) -> Tuple[int, ...]:
        """各组全同粒子的个数，按首次出现的顺序给出。"""

        counts = Counter(self.particles)
        seen: List[Particle] = []
        for particle in self.particles:
            if particle not in seen:
                seen.append(particle)
        return tuple(counts[p] for p in seen)

    def __str__(self) -> str:
        body = " ".join(f"({p.pm},{p.pt})" for p in self.particles)
        if self.coefficient == 1.0:
            return f"[{body}]"
        return f"{self.coefficient:g}*[{body}]"


@dataclass
class Basis(Sequence[Monomial]):
    """粒子数固定的有序单项式集合，重复的粒子序列只保留第一次出现。"""

    monomials: Tuple[Monomial, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        unique: List[Monomial] = []
        seen = set()
        for mono in self.monomials:
            key = mono.particles
            if key in seen:
                continue
            seen.add(key)
            unique.append(mono)
        counts = {mono.n_particles for mono in unique}
        if len(counts) > 1:
            raise ValueError(f"基组中的粒子数不一致：{sorted(counts)}。")
        self.monomials = tuple(unique)

    @property
    def n_particles(self) -> int:
        if not self.monomials:
            raise ValueError("空基组没有确定的粒子数。")
        return self.monomials[0].n_particles

    @overload
    def __getitem__(self, index: int) -> Monomial: ...

    @overload
    def __getitem__(self, index: slice) -> "Basis": ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return Basis(self.monomials[index])
        return self.monomials[index]

    def __len__(self) -> int:
        return len(self.monomials)

    def __iter__(self) -> Iterator[Monomial]:
        return iter(self.monomials)

    def __str__(self) -> str:
        return "{" + ", ".join(str(m) for m in self.monomials) + "}"


def as_basis(monomials: Iterable[Monomial] | Basis) -> Basis:
    if isinstance(monomials, Basis):
        return monomials
    return Basis(tuple(monomials))
