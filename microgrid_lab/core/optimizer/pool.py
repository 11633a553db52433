from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from microgrid_lab.core.models import EquipmentConfiguration, SimulationResult


@dataclass
class PoolEntry:
    """Feasible candidate kept during the sweep; scored only at finalization."""

    candidate_id: str
    config: EquipmentConfiguration
    total_cost: float
    simulation: SimulationResult

    @property
    def reliability(self) -> float:
        return self.simulation.reliability


class SolutionPool:
    """Fixed-capacity arena of the best feasible candidates.

    Once full, a newcomer replaces the current worst member (lowest reliability,
    ties broken by higher cost) only if it is strictly better.
    """

    def __init__(self, capacity: int = 20):
        if capacity <= 0:
            raise ValueError("Pool capacity must be positive.")
        self.capacity = capacity
        self._entries: List[PoolEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))

    @property
    def entries(self) -> List[PoolEntry]:
        return list(self._entries)

    def _worst_index(self) -> int:
        worst = 0
        for idx in range(1, len(self._entries)):
            current = self._entries[idx]
            incumbent = self._entries[worst]
            if current.reliability < incumbent.reliability:
                worst = idx
            elif current.reliability == incumbent.reliability and current.total_cost > incumbent.total_cost:
                worst = idx
        return worst

    def offer(self, entry: PoolEntry) -> bool:
        """Insert ``entry`` if there is room or it beats the worst member."""
        if len(self._entries) < self.capacity:
            self._entries.append(entry)
            return True
        idx = self._worst_index()
        worst = self._entries[idx]
        if entry.reliability > worst.reliability or (
            entry.reliability == worst.reliability and entry.total_cost < worst.total_cost
        ):
            self._entries[idx] = entry
            return True
        return False

    def min_cost(self) -> Optional[float]:
        if not self._entries:
            return None
        return min(entry.total_cost for entry in self._entries)
