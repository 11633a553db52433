from __future__ import annotations

import json
import os
import time
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from microgrid_lab.core.models import GroupSolution, Solution
from microgrid_lab.logging_config import get_logger
from microgrid_lab.state import group_solution_from_store, serialize_dataclass, solution_from_store

logger = get_logger(__name__)

STORE_DIR_ENV = "MICROGRID_STORE_DIR"
DEFAULT_STORE_DIR = Path("exports") / "solutions"
STORE_VERSION = "1.0"
SOLUTIONS_FILE = "solutions.json"
GROUP_SOLUTIONS_FILE = "group_solutions.json"

MAX_SOLUTIONS_PER_REGION = 20
RECOVERY_SOLUTIONS = 10
PRUNE_THRESHOLD_BYTES = 4 * 1024 * 1024
KEEP_RECENT_REGIONS = 10
DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024


class StorageQuotaError(Exception):
    """Raised when a serialized store would exceed its byte quota."""


def _compact(solution: Solution) -> Dict[str, Any]:
    stripped = replace(solution, simulation=replace(solution.simulation, hourly=[]))
    return serialize_dataclass(stripped)


def _empty_store() -> Dict[str, Any]:
    return {"version": STORE_VERSION, "last_update": 0, "regions": {}}


class SolutionStore:
    """JSON file store of optimizer results keyed by region id or group name."""

    def __init__(self, directory: str | Path | None = None, quota_bytes: int = DEFAULT_QUOTA_BYTES):
        if directory is None:
            directory = os.getenv(STORE_DIR_ENV) or DEFAULT_STORE_DIR
        self.directory = Path(directory).expanduser()
        self.quota_bytes = quota_bytes

    @property
    def solutions_path(self) -> Path:
        return self.directory / SOLUTIONS_FILE

    @property
    def groups_path(self) -> Path:
        return self.directory / GROUP_SOLUTIONS_FILE

    def _read(self, path: Path) -> Optional[Dict[str, Any]]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except OSError:
            logger.exception("Failed to read %s", path)
            return None
        except json.JSONDecodeError:
            logger.warning("Ignoring corrupt store file %s", path)
            return None
        return data if isinstance(data, dict) else None

    def _write(self, path: Path, payload: Dict[str, Any]) -> None:
        text = json.dumps(payload)
        if len(text) > self.quota_bytes:
            raise StorageQuotaError(f"{len(text)} bytes exceeds quota of {self.quota_bytes}")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")

    def load_all(self) -> Dict[str, Any]:
        """Raw store payload: ``version``, ``last_update`` and ``regions``."""
        data = self._read(self.solutions_path)
        if data is None or not isinstance(data.get("regions"), dict):
            return _empty_store()
        return data

    def load_region_solutions(self, region_id: int) -> List[Solution]:
        items = self.load_all()["regions"].get(str(region_id), [])
        return [solution_from_store(item) for item in items]

    def save_region_solutions(self, region_id: int, solutions: List[Solution]) -> None:
        """
        Persist up to 20 solutions for ``region_id`` without hourly detail.

        Oversized payloads are pruned to the ten most recently updated regions.
        When the quota is still exceeded the store is reset to this region's
        first ten solutions.
        """
        stored = self.load_all()
        regions = stored["regions"]
        key = str(region_id)
        regions.pop(key, None)
        regions[key] = [_compact(s) for s in solutions[:MAX_SOLUTIONS_PER_REGION]]
        stored["last_update"] = int(time.time() * 1000)

        if len(json.dumps(stored)) > PRUNE_THRESHOLD_BYTES and len(regions) > KEEP_RECENT_REGIONS:
            logger.warning("Solution store is large; keeping the %d most recent regions", KEEP_RECENT_REGIONS)
            for stale in list(regions)[: len(regions) - KEEP_RECENT_REGIONS]:
                del regions[stale]

        try:
            self._write(self.solutions_path, stored)
        except StorageQuotaError:
            logger.warning("Solution store quota exceeded; keeping only region %s", region_id)
            self.clear()
            fallback = {
                "version": STORE_VERSION,
                "last_update": int(time.time() * 1000),
                "regions": {key: [_compact(s) for s in solutions[:RECOVERY_SOLUTIONS]]},
            }
            try:
                self._write(self.solutions_path, fallback)
            except StorageQuotaError:
                logger.error("Unable to save solutions for region %s even after clearing the store", region_id)

    def clear(self) -> None:
        self.solutions_path.unlink(missing_ok=True)

    def export_json(self) -> str:
        return json.dumps(self.load_all(), indent=2)

    def import_json(self, text: str) -> bool:
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            logger.warning("Rejected solution import: not valid JSON")
            return False
        if not isinstance(data, dict) or not data.get("version") or not isinstance(data.get("regions"), dict):
            logger.warning("Rejected solution import: missing version or regions")
            return False
        try:
            self._write(self.solutions_path, data)
        except StorageQuotaError:
            logger.error("Rejected solution import: payload exceeds quota")
            return False
        return True

    def _load_groups(self) -> Dict[str, Any]:
        return self._read(self.groups_path) or {}

    def save_group_solution(self, group_name: str, solution: GroupSolution) -> None:
        stored = self._load_groups()
        stored[group_name] = serialize_dataclass(
            replace(
                solution,
                region_solutions=[
                    replace(s, simulation=replace(s.simulation, hourly=[])) for s in solution.region_solutions
                ],
            )
        )
        try:
            self._write(self.groups_path, stored)
        except StorageQuotaError:
            logger.error("Unable to save group solution %s: quota exceeded", group_name)

    def load_group_solution(self, group_name: str) -> Optional[GroupSolution]:
        data = self._load_groups().get(group_name)
        return group_solution_from_store(data) if data else None

    def clear_group_solutions(self) -> None:
        self.groups_path.unlink(missing_ok=True)
