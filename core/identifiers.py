# ============================================================================
# PURCHASER IDENTIFIERS
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core - Session token generation
# PURPOSE: 16-digit numeric tokens correlating a purchaser's jobs
# CREATED: 02 OCT 2026
# ============================================================================
"""
Purchaser Identifiers

Human-visible session tokens, not secrets: collisions are possible and the
resume logic (most recent job wins) tolerates them.
"""

import random
import re
from typing import Optional

IDENTIFIER_LENGTH = 16

_IDENTIFIER_PATTERN = re.compile(rf"[0-9]{{{IDENTIFIER_LENGTH}}}")


def generate_identifier(rng: Optional[random.Random] = None) -> str:
    """
    Generate a random 16-digit identifier.

    Args:
        rng: Optional random source (tests pass a seeded instance)

    Returns:
        String of exactly 16 decimal digits (leading zeros allowed)
    """
    source = rng or random
    return "".join(str(source.randint(0, 9)) for _ in range(IDENTIFIER_LENGTH))


def is_valid_identifier(value: Optional[str]) -> bool:
    """Check that value has the 16-digit identifier shape."""
    return bool(value) and bool(_IDENTIFIER_PATTERN.fullmatch(value))


__all__ = ["IDENTIFIER_LENGTH", "generate_identifier", "is_valid_identifier"]
