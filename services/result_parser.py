# ============================================================================
# RESULT PARSER
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Service - Pure function over the processor's result text
# PURPOSE: Extract the climate report from a completed job's result
# CREATED: 04 OCT 2026
# ============================================================================
"""
Result Parser

The processor returns its report as JSON text, usually wrapped in a
fenced code block:

    ```json
    {"674": {...report...}}
    ```

The report lives under "674" (the CIP-20 transaction metadata label).
The report must be a JSON object; its contents are returned as-is.
"""

import json
import re
from typing import Any, Dict

from core.exceptions import ParseError

REPORT_KEY = "674"

# Opening fence with an optional format tag, and the closing fence
_FENCE_OPEN = re.compile(r"\A```[A-Za-z0-9_+-]*[ \t]*\r?\n?")
_FENCE_CLOSE = re.compile(r"\r?\n?```\Z")


def strip_code_fence(text: str) -> str:
    """Trim whitespace and remove a surrounding ``` fence if present."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_OPEN.sub("", cleaned, count=1)
        cleaned = _FENCE_CLOSE.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_climate_result(text: str) -> Dict[str, Any]:
    """
    Parse a result payload into the raw climate report.

    Args:
        text: Result string from the status response

    Returns:
        The object stored under "674", unmodified

    Raises:
        ParseError: Not JSON, not an object, no "674" key, or the report
            under "674" is null or not an object
    """
    if text is None:
        raise ParseError("Result payload is empty")

    cleaned = strip_code_fence(text)
    try:
        document = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ParseError(f"Result payload is not valid JSON: {e.msg}") from e

    if not isinstance(document, dict):
        raise ParseError(
            f"Result payload must be a JSON object, got {type(document).__name__}"
        )
    if REPORT_KEY not in document:
        raise ParseError(f'Climate data not found in response (missing "{REPORT_KEY}" key)')

    report = document[REPORT_KEY]
    if report is None:
        raise ParseError(f'Climate data not found in response ("{REPORT_KEY}" is null)')
    if not isinstance(report, dict):
        raise ParseError(
            f'Climate data under "{REPORT_KEY}" must be a JSON object, got {type(report).__name__}'
        )

    return report


__all__ = ["REPORT_KEY", "strip_code_fence", "parse_climate_result"]
