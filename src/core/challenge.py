# src/core/challenge.py

"""Challenge records: user-defined "complete N games" goals."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any

from src.core.game import format_timestamp, parse_timestamp

__all__ = ["Challenge", "ChallengeIdea", "ChallengeStatus"]


class ChallengeStatus(str, Enum):
    """Lifecycle state of a challenge."""

    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass(frozen=True)
class ChallengeIdea:
    """A proposed challenge, typed in by the user or suggested by the oracle.

    Attributes:
        title: Short, catchy title.
        description: One-sentence description, mined for genre/platform keywords.
        goal: Number of games to complete.
    """

    title: str
    description: str
    goal: int


@dataclass(frozen=True)
class Challenge:
    """A user-defined goal tracked by counting completed games.

    Attributes:
        title: Challenge title.
        description: Free-text description.
        goal: Positive target count.
        progress: Current count, always within [0, goal].
        status: ACTIVE until progress reaches goal.
        id: Document identifier.
        created_at: Creation timestamp.
        completed_at: Stamped once when the goal is reached.
    """

    title: str
    description: str
    goal: int
    progress: int = 0
    status: ChallengeStatus = ChallengeStatus.ACTIVE
    id: str | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.goal < 1:
            raise ValueError(f"goal must be positive, got {self.goal}")
        if not 0 <= self.progress <= self.goal:
            raise ValueError(f"progress {self.progress} outside [0, {self.goal}]")
        object.__setattr__(self, "status", ChallengeStatus(self.status))

    @property
    def is_active(self) -> bool:
        return self.status is ChallengeStatus.ACTIVE

    def advance(self, now: datetime) -> Challenge:
        """Returns a copy with progress incremented by one, capped at goal.

        Reaching the goal completes the challenge and stamps completed_at,
        which is never overwritten afterwards.

        Args:
            now: Timestamp to use if the challenge completes.

        Returns:
            The updated challenge.
        """
        progress = min(self.progress + 1, self.goal)
        if progress < self.goal:
            return replace(self, progress=progress)
        return replace(
            self,
            progress=progress,
            status=ChallengeStatus.COMPLETED,
            completed_at=self.completed_at or now,
        )

    def to_document(self) -> dict[str, Any]:
        """Serializes the challenge to a store document."""
        doc: dict[str, Any] = {
            "title": self.title,
            "description": self.description,
            "goal": self.goal,
            "progress": self.progress,
            "status": self.status.value,
        }
        if self.created_at is not None:
            doc["createdAt"] = format_timestamp(self.created_at)
        if self.completed_at is not None:
            doc["completedAt"] = format_timestamp(self.completed_at)
        return doc

    @classmethod
    def from_document(cls, doc_id: str | None, doc: dict[str, Any]) -> Challenge:
        """Builds a challenge from a stored document."""
        return cls(
            id=doc_id,
            title=doc.get("title", ""),
            description=doc.get("description", ""),
            goal=int(doc.get("goal", 1)),
            progress=int(doc.get("progress", 0)),
            status=ChallengeStatus(doc.get("status", ChallengeStatus.ACTIVE.value)),
            created_at=parse_timestamp(doc.get("createdAt")),
            completed_at=parse_timestamp(doc.get("completedAt")),
        )
