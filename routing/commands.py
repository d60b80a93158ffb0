from dataclasses import dataclass
from typing import Any

# Commands posted by the control thread and applied by the audio thread at
# the start of the next block. Targets are graph handles, compared by identity.


@dataclass(frozen=True, eq=False)
class SetParam:
    target: Any
    name: str
    value: float

@dataclass(frozen=True, eq=False)
class StartSource:
    strip: Any
    source: Any
    offset: float = 0.0   # seconds into the buffer

@dataclass(frozen=True, eq=False)
class StopSource:
    strip: Any
    source: Any
