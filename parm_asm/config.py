"""
Target profiles.

A profile fixes the parts of the output that depend on the CPU the image is
loaded into: the branch pipeline advance (in words) and the memory image
header. `parm` is the Logisim-evolution PARM processor and the default.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional

LOGISIM_HEADER = "v2.0 raw"


@dataclass(frozen=True)
class TargetProfile:
    name: str
    description: str
    branch_bias: int                     # words between branch address and PC base
    header: str = LOGISIM_HEADER
    words_per_line: Optional[int] = None  # None = all words on one line


TARGET_PROFILES: Dict[str, TargetProfile] = {
    "parm": TargetProfile(
        name="parm",
        description="PARM processor (Logisim-evolution), PC reads branch address + 3",
        branch_bias=3,
    ),
    "armv6m": TargetProfile(
        name="armv6m",
        description="Architectural Thumb (ARMv6-M), PC reads branch address + 4 bytes",
        branch_bias=2,
    ),
}

DEFAULT_TARGET = "parm"


def get_profile(name: str) -> TargetProfile:
    try:
        return TARGET_PROFILES[name]
    except KeyError:
        known = ", ".join(TARGET_PROFILES)
        raise KeyError(f"Unknown target '{name}' (known: {known})") from None
