from __future__ import annotations

import re
from functools import lru_cache

DEFAULT_TOUCH_USER_AGENT_PATTERN = "iPhone|iPad|iPod|Android"


@lru_cache(maxsize=8)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def is_touch_user_agent(user_agent: str | None, *, pattern: str = DEFAULT_TOUCH_USER_AGENT_PATTERN) -> bool:
    """Best-effort touch/mobile detection from a browser user-agent string."""
    if not user_agent:
        return False
    return _compile(pattern).search(user_agent) is not None
