"""Weighted discipline rotation.

Sugere a próxima disciplina a estudar por sorteio ponderado pelos pesos do
plano, evitando repetir a última sugestão quando há alternativa.
"""

from __future__ import annotations

import math
import random
import threading
from collections import OrderedDict
from collections.abc import Callable, Mapping

WeightsProvider = Callable[[], Mapping[str, float]]


def pick_by_weight(
    weights: Mapping[str, float],
    exclude: str | None = None,
    rng: Callable[[], float] = random.random,
) -> str | None:
    """Pick a name with probability proportional to its weight.

    - Only non-empty names with finite weight > 0 are candidates.
    - `exclude` is dropped from the pool only when 2+ candidates exist.
    - Returns None when nothing is selectable.
    """

    entries: list[tuple[str, float]] = []
    for name, raw_weight in weights.items():
        try:
            weight = float(raw_weight)
        except (TypeError, ValueError):
            continue
        if name and math.isfinite(weight) and weight > 0:
            entries.append((name, weight))

    if not entries:
        return None

    pool = entries
    if len(entries) > 1 and exclude:
        pool = [entry for entry in entries if entry[0] != exclude]
    total = sum(weight for _, weight in pool)
    if total <= 0:
        return None

    threshold = rng() * total
    acc = 0.0
    for name, weight in pool:
        acc += weight
        if threshold <= acc:
            return name
    # float rounding
    return pool[-1][0]


class RotationPicker:
    """Stateful picker remembering the last recommended discipline."""

    def __init__(
        self,
        weights_provider: WeightsProvider,
        *,
        rng: Callable[[], float] | None = None,
    ) -> None:
        self._weights_provider = weights_provider
        self._rng = rng or random.random
        self._lock = threading.Lock()
        self.last_picked: str | None = None

    def next(self) -> str | None:
        with self._lock:
            picked = pick_by_weight(self._weights_provider(), self.last_picked, self._rng)
            self.last_picked = picked
            return picked

    def peek(self) -> str | None:
        with self._lock:
            return pick_by_weight(self._weights_provider(), self.last_picked, self._rng)

    def reset(self) -> None:
        with self._lock:
            self.last_picked = None

    def set_weights_provider(self, weights_provider: WeightsProvider) -> None:
        with self._lock:
            self._weights_provider = weights_provider


class RotationRegistry:
    """One picker per study plan, shared by every request in the process.

    Guarda no máximo `max_plans` seletores; o plano usado há mais tempo é
    descartado e volta a começar sem "última sugestão".
    """

    def __init__(self, *, rng: Callable[[], float] | None = None, max_plans: int = 1024) -> None:
        self._rng = rng
        self._max_plans = max_plans
        self._lock = threading.Lock()
        self._pickers: OrderedDict[str, RotationPicker] = OrderedDict()

    def get(self, study_plan_id: str, weights_provider: WeightsProvider) -> RotationPicker:
        """Return the plan's picker, pointing it at the current weights source."""

        with self._lock:
            picker = self._pickers.get(study_plan_id)
            if picker is None:
                picker = RotationPicker(weights_provider, rng=self._rng)
                self._pickers[study_plan_id] = picker
                while len(self._pickers) > self._max_plans:
                    self._pickers.popitem(last=False)
            else:
                self._pickers.move_to_end(study_plan_id)
        picker.set_weights_provider(weights_provider)
        return picker

    def __len__(self) -> int:
        with self._lock:
            return len(self._pickers)

    def clear(self) -> None:
        with self._lock:
            self._pickers.clear()


registry = RotationRegistry()
