from __future__ import annotations

import math
from dataclasses import dataclass

WEIGHT_TOLERANCE = 1e-6
AWARD_CAP = 50_000.0
DEADLINE_SOON_DAYS = 30
NO_DEADLINE_DAYS = 365.0


@dataclass(frozen=True, slots=True)
class MatchingWeights:
    semantic: float
    award: float
    complexity: float
    deadline_proximity: float

    def __post_init__(self) -> None:
        for field_name in ("semantic", "award", "complexity", "deadline_proximity"):
            value = float(getattr(self, field_name))
            if not math.isfinite(value):
                raise ValueError(f"Matching weight '{field_name}' must be finite.")
            if value < 0.0 or value > 1.0:
                raise ValueError(f"Matching weight '{field_name}' must be between 0.0 and 1.0.")

        total = self.semantic + self.award + self.complexity + self.deadline_proximity
        if not math.isclose(total, 1.0, abs_tol=WEIGHT_TOLERANCE):
            raise ValueError(
                "Matching weights must sum to 1.0 "
                f"(received {total:.6f}, tolerance={WEIGHT_TOLERANCE})."
            )

    @classmethod
    def baseline(cls) -> MatchingWeights:
        return cls(semantic=0.60, award=0.20, complexity=0.10, deadline_proximity=0.10)

    def to_dict(self) -> dict[str, float]:
        return {
            "semantic": self.semantic,
            "award": self.award,
            "complexity": self.complexity,
            "deadline_proximity": self.deadline_proximity,
        }


MATCHING_WEIGHTS = MatchingWeights.baseline()
