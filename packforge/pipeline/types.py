# packforge/pipeline/types.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum



class Stage(str, Enum):
    INITIALIZING = "Initializing Packages"
    READING_CACHES = "Reading Caches"
    LOADING = "Loading"
    MERGING = "Merging"
    SYNCING_DATABASE = "Syncing Database"
    POPULATING_DATABASE = "Populating Database"
    WRITING_DATABASE = "Writing Database"
    WRITING_CACHES = "Writing Caches"



@dataclass(frozen=True, slots=True)
class ProgressReport:
    # Stage label; package loads read "Loading <package>"
    stage: str
    item: str
    fraction: float
    # Host should repaint even when throttling progress updates
    forceDisplay: bool = False

    @classmethod
    def make(cls, stage: Stage | str, item: str = "", done: int = 0, total: int = 0, *, forceDisplay: bool = False) -> ProgressReport:
        label = stage.value if isinstance(stage, Stage) else stage
        fraction = 1.0 if total <= 0 else min(1.0, max(0.0, done / total))
        return cls(stage=label, item=item, fraction=fraction, forceDisplay=forceDisplay)
