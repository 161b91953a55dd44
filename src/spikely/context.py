"""Engine context: the random generator and diagnostics shared by one run."""

import logging
import random
from collections import Counter
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Diagnostic:
    level: str
    code: str
    message: str


@dataclass
class Diagnostics:
    """Accumulates warnings and informational events for a run."""

    records: list[Diagnostic] = field(default_factory=list)
    counts: Counter = field(default_factory=Counter)

    def _emit(self, level: int, code: str, message: str, keep: bool) -> None:
        self.counts[code] += 1
        if keep:
            self.records.append(Diagnostic(logging.getLevelName(level), code, message))
        logger.log(level, "%s: %s", code, message)

    def debug(self, code: str, message: str) -> None:
        self._emit(logging.DEBUG, code, message, keep=False)

    def info(self, code: str, message: str) -> None:
        self._emit(logging.INFO, code, message, keep=False)

    def warn(self, code: str, message: str) -> None:
        self._emit(logging.WARNING, code, message, keep=True)

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.records if d.level == "WARNING"]

    def count(self, code: str) -> int:
        return self.counts[code]


@dataclass
class EngineContext:
    """Seeded random generator plus accumulated diagnostics.

    Passed explicitly through every component so a run is reproducible
    from its seed and input files alone.
    """

    seed: int | None = None
    rng: random.Random = field(init=False)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    def __post_init__(self) -> None:
        self.rng = random.Random(self.seed)
