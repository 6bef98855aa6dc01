"""
Outcome records for backup and restore passes.

Outcomes are collected for logging and reporting only; a failed task never
changes how the rest of a pass is processed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional


@dataclass
class RunOutcome:
    """Result of dumping or restoring a single database."""
    database: str
    path: Path
    success: bool
    error: Optional[str] = None
    duration_seconds: float = 0.0


@dataclass
class PassSummary:
    """Aggregated outcomes of one backup or restore pass."""
    mode: str
    outcomes: List[RunOutcome] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    error: Optional[str] = None  # set when the pass was aborted

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @property
    def aborted(self) -> bool:
        return self.error is not None

    def format_report(self) -> str:
        """Format the pass result as a human-readable report."""
        if self.aborted:
            return f"{self.mode.capitalize()} pass aborted: {self.error}"

        verb = "dumped" if self.mode == "backup" else "restored"
        lines = [f"{self.succeeded} databases {verb}!"]

        if self.failed:
            lines.append(f"{self.failed} failed:")
            for outcome in self.outcomes:
                if not outcome.success:
                    lines.append(f"  - {outcome.database}: {outcome.error}")

        return "\n".join(lines)
