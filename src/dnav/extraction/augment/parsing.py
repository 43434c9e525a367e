"""Parsing model output into JSON with explicit outcomes.

    text --parse_json--> Parsed | NeedsRepair | Failed
    NeedsRepair --one repair call--> Parsed | Failed

Only one repair call is ever made per response.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


@dataclass(frozen=True)
class Parsed:
    value: Any


@dataclass(frozen=True)
class NeedsRepair:
    raw: str
    reason: str


@dataclass(frozen=True)
class Failed:
    reason: str


ParseOutcome = Union[Parsed, NeedsRepair, Failed]


def _outermost(text: str) -> str | None:
    """Substring from the first ``{``/``[`` to the last matching closer."""
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return None
    start = min(starts)
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    if end <= start:
        return None
    return text[start:end + 1]


def parse_json(text: str) -> ParseOutcome:
    """Direct parse, then the outermost object/array substring."""
    stripped = (text or "").strip()
    if not stripped:
        return Failed("empty response")

    fenced = _FENCE_RE.match(stripped)
    if fenced:
        stripped = fenced.group(1)

    try:
        return Parsed(json.loads(stripped))
    except json.JSONDecodeError as e:
        reason = f"invalid JSON: {e.msg} at {e.pos}"

    inner = _outermost(stripped)
    if inner is not None and inner != stripped:
        try:
            return Parsed(json.loads(inner))
        except json.JSONDecodeError as e:
            reason = f"invalid embedded JSON: {e.msg} at {e.pos}"

    return NeedsRepair(raw=stripped, reason=reason)


async def parse_with_repair(
    text: str,
    repair: Callable[[str], Awaitable[str]],
) -> Parsed | Failed:
    """Run :func:`parse_json`, spending at most one *repair* call."""
    outcome = parse_json(text)
    if not isinstance(outcome, NeedsRepair):
        return outcome

    repaired = parse_json(await repair(outcome.raw))
    if isinstance(repaired, NeedsRepair):
        return Failed(f"still unparseable after repair ({repaired.reason})")
    return repaired
