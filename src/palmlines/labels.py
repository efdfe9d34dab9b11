from __future__ import annotations

import logging
import re
from typing import Dict, Optional

from .types import LineType


logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

# Keys are labels after `_canonical_key`: lower-case, alphanumerics only, trailing "line" removed.
LINE_LABELS: Dict[str, LineType] = {
    "heart": LineType.HEART,
    "head": LineType.HEAD,
    "life": LineType.LIFE,
    "fate": LineType.FATE,
    "destiny": LineType.FATE,
    "sun": LineType.SUN,
    "apollo": LineType.SUN,
    "marriage": LineType.MARRIAGE,
    "relationship": LineType.MARRIAGE,
    "affection": LineType.MARRIAGE,
}


def _canonical_key(label: str) -> str:
    key = _NON_ALNUM.sub("", label.lower())
    if key.endswith("line") and key != "line":
        key = key[: -len("line")]
    return key


def normalize_line_label(label: object) -> Optional[LineType]:
    """
    Map a free-text detector class label onto `LineType`.

    "heart", "Heart_Line", "heart-line", "HEARTLINE" and "heart line" all map to `LineType.HEART`.
    Returns None (and logs a warning) for anything not in `LINE_LABELS`.
    """
    if isinstance(label, LineType):
        return label
    if not isinstance(label, str):
        logger.warning("Dropping palm line with non-string class label: %r", label)
        return None

    line_type = LINE_LABELS.get(_canonical_key(label))
    if line_type is None:
        logger.warning("Dropping palm line with unknown class label: %r", label)
    return line_type
