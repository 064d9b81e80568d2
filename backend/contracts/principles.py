"""
The 42 Principles

Fixed, named check set every run is measured against. Check ids are
1-based and match the position in PRINCIPLES.
"""

from __future__ import annotations
from typing import Optional, Tuple

PRINCIPLES: Tuple[str, ...] = (
    "I have not committed sin",
    "I have not committed robbery with violence",
    "I have not stolen",
    "I have not slain men or women",
    "I have not stolen food",
    "I have not swindled offerings",
    "I have not stolen from the divine",
    "I have not told lies",
    "I have not carried away food",
    "I have not cursed",
    "I have not closed my ears to truth",
    "I have not committed adultery",
    "I have not made anyone cry",
    "I have not felt sorrow without reason",
    "I have not assaulted anyone",
    "I am not deceitful",
    "I have not stolen anyone's land",
    "I have not been an eavesdropper",
    "I have not falsely accused anyone",
    "I have not been angry without reason",
    "I have not seduced anyone's partner",
    "I have not polluted myself",
    "I have not terrorized anyone",
    "I have not disobeyed the law",
    "I have not been exclusively angry",
    "I have not cursed the divine",
    "I have not behaved with violence",
    "I have not caused disruption of peace",
    "I have not acted hastily or without thought",
    "I have not overstepped my boundaries of concern",
    "I have not exaggerated my words when speaking",
    "I have not worked evil",
    "I have not used evil thoughts, words or deeds",
    "I have not polluted the water",
    "I have not spoken angrily or arrogantly",
    "I have not cursed anyone in thought, word or deed",
    "I have not placed myself on a pedestal",
    "I have not stolen what belongs to the divine",
    "I have not stolen from or disrespected the deceased",
    "I have not taken food from a child",
    "I have not acted with insolence",
    "I have not destroyed property belonging to the divine",
)

CHECK_COUNT = len(PRINCIPLES)
MIN_CHECK_ID = 1
MAX_CHECK_ID = CHECK_COUNT

# Substring of principle #1 a confirmation must contain.
PRINCIPLE_ONE_TOKEN = "not committed sin"


def is_valid_check_id(check_id: int) -> bool:
    return MIN_CHECK_ID <= check_id <= MAX_CHECK_ID


def principle_name(check_id: int) -> Optional[str]:
    if not is_valid_check_id(check_id):
        return None
    return PRINCIPLES[check_id - 1]
