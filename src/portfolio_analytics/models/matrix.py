import math

import pandas as pd
from pydantic import BaseModel, model_validator


def _triangle_size(n: int) -> int:
    return n * (n + 1) // 2


class SymmetricMatrix(BaseModel):
    """N x N symmetric matrix stored as its row-major upper triangle.

    ``get(i, j)`` and ``get(j, i)`` read the same cell, so symmetry holds by
    construction.
    """

    symbols: list[str]
    upper: list[float | None]

    @model_validator(mode="after")
    def _check_size(self) -> "SymmetricMatrix":
        expected = _triangle_size(len(self.symbols))
        if len(self.upper) != expected:
            raise ValueError(
                f"upper triangle has {len(self.upper)} cells, expected {expected}"
            )
        return self

    @property
    def size(self) -> int:
        return len(self.symbols)

    def _index(self, i: int, j: int) -> int:
        n = self.size
        if not (0 <= i < n and 0 <= j < n):
            raise IndexError(f"({i}, {j}) outside {n}x{n} matrix")
        if i > j:
            i, j = j, i
        return i * n - i * (i - 1) // 2 + (j - i)

    def get(self, i: int, j: int) -> float | None:
        return self.upper[self._index(i, j)]

    def __getitem__(self, key: tuple[int, int]) -> float | None:
        return self.get(*key)

    def lookup(self, a: str, b: str) -> float | None:
        return self.get(self.symbols.index(a), self.symbols.index(b))

    def to_list(self) -> list[list[float | None]]:
        n = self.size
        return [[self.get(i, j) for j in range(n)] for i in range(n)]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.to_list(), index=self.symbols, columns=self.symbols)

    @classmethod
    def build(cls, symbols: list[str], cell, **extra) -> "SymmetricMatrix":
        """Fill the upper triangle by calling ``cell(i, j)`` once per pair."""
        n = len(symbols)
        upper = [cell(i, j) for i in range(n) for j in range(i, n)]
        return cls(symbols=list(symbols), upper=upper, **extra)


class CovarianceMatrix(SymmetricMatrix):
    upper: list[float]
    periods_per_year: int = 252

    def variance(self, i: int) -> float:
        return self.upper[self._index(i, i)]

    def std_dev(self, i: int) -> float:
        return math.sqrt(self.variance(i))


class CorrelationMatrix(SymmetricMatrix):
    out_of_bounds: list[tuple[str, str, float]] = []
    undefined: list[tuple[str, str]] = []

    @property
    def is_well_formed(self) -> bool:
        return not self.out_of_bounds
