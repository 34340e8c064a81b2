"""
Per-pipeline random number source.

Each AugmentationPipeline owns one RandomSource. Sharing a source between
data-loader workers is not supported; derive one per worker instead.

Author: yuhezhang-ai
"""

import torch
from typing import Optional


class RandomSource:
    """
    Uniform [0, 1) generator backed by a private ``torch.Generator``.

    Degenerate ranges never advance the generator: ``uniform(a, a)`` returns ``a``
    and ``bernoulli(p)`` with ``p <= 0`` or ``p >= 1`` returns without drawing.

    Args:
        seed: Seed for the generator. If None, a non-deterministic seed is
              chosen once and exposed as ``seed``.

    Example:
        ```python
        rng = RandomSource(seed=42)
        angle = rng.uniform_zero_centered(10.0)
        flip = rng.bernoulli(0.5)
        ```
    """

    def __init__(self, seed: Optional[int] = None):
        self._generator = torch.Generator()
        self.reseed(seed)

    def reseed(self, seed: Optional[int] = None) -> None:
        if seed is None:
            self.seed = self._generator.seed()
        else:
            self.seed = int(seed)
            self._generator.manual_seed(self.seed)

    @classmethod
    def for_worker(cls, base_seed: int, worker_id: int) -> 'RandomSource':
        """
        Create an independent source for a data-loader worker.

        Typically called from a ``worker_init_fn`` with
        ``torch.utils.data.get_worker_info().seed``.
        """
        seed_seq = torch.Generator()
        seed_seq.manual_seed(int(base_seed))
        offsets = torch.randint(0, 2 ** 62, (int(worker_id) + 1,), generator=seed_seq)
        return cls(seed=int(offsets[-1].item()))

    def uniform01(self) -> float:
        return torch.rand((), generator=self._generator, dtype=torch.float64).item()

    def uniform(self, low: float, high: float) -> float:
        if low == high:
            return float(low)
        return low + (high - low) * self.uniform01()

    def uniform_zero_centered(self, high: float) -> float:
        return self.uniform(-high, high)

    def bernoulli(self, p: float = 0.5) -> bool:
        if p <= 0.0:
            return False
        if p >= 1.0:
            return True
        return self.uniform01() < p

    def get_state(self) -> torch.Tensor:
        return self._generator.get_state()

    def set_state(self, state: torch.Tensor) -> None:
        self._generator.set_state(state)

    def __repr__(self):
        return f"{self.__class__.__name__}(seed={self.seed})"


__all__ = ['RandomSource']
