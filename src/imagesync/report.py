from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .classifier import SyncMode
from .planner import SyncPlan
from .scheduler import Outcome


class SyncStatus(str, Enum):
    SYNCED = "synced"
    ALREADY_SYNCED = "already-synced"
    PARTIAL = "partial"


@dataclass
class SyncReport:
    """What one sync run did."""

    mode: SyncMode
    status: SyncStatus
    source: str
    destination: str
    plan: Optional[SyncPlan] = None
    outcomes: List[Outcome[str]] = field(default_factory=list)

    @property
    def failed_tags(self) -> List[str]:
        return [o.item for o in self.outcomes if o.error is not None]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "mode": self.mode.value,
            "status": self.status.value,
            "source": self.source,
            "destination": self.destination,
        }
        if self.plan is not None:
            data["plan"] = {
                "tags": list(self.plan.tags),
                "source_count": self.plan.source_count,
                "filtered_out": self.plan.filtered_out,
                "already_present": self.plan.already_present,
            }
        data["tags"] = [
            {
                "tag": o.item,
                "status": o.status.value,
                **({"error": str(o.error)} if o.error is not None else {}),
            }
            for o in sorted(self.outcomes, key=lambda o: o.item)
        ]
        return data

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        return path
