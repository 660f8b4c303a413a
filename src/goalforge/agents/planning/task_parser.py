"""
TaskListParser - reads task enumerations out of backend responses.

Supports multiple formats:
1. JSON array of strings (bare, fenced in a code block, or embedded in prose)
2. Numbered / bulleted / "Task N:" lines
"""

import json
import logging
import re
from typing import Iterable, List, Optional, Tuple

from goalforge.errors import ParseError

_LIST_MARKER = re.compile(
    r"^\s*(?:(?:task|step)\s*\d+\s*[:.)-]|\d+\s*[.):-]|[-*•+]|\[[ xX]?\])\s*(.+)$",
    re.IGNORECASE,
)
_NEW_TASKS_HEADING = re.compile(
    r"^\s*[#*]*\s*(?:new|follow[- ]?up|additional)\s+tasks\s*[*]*\s*(?::[*]*\s*(.*)|[#*]*\s*)$",
    re.IGNORECASE | re.MULTILINE,
)
_PLACEHOLDERS = {
    "none",
    "n/a",
    "na",
    "nothing",
    "no new tasks",
    "no additional tasks",
    "no further tasks",
    "no follow-up tasks",
    "no more tasks",
}
_QUOTES = "\"'`“”‘’"


class TaskListParser:
    """Parses backend text into an ordered list of task descriptions."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(__name__)

    def parse(self, response: str, *, allow_bare_line: bool = False) -> List[str]:
        """
        Parse an enumeration of tasks.

        Returns a non-empty list with duplicates and placeholder items
        ("none", "n/a", ...) removed, in response order.  With
        ``allow_bare_line`` a single unmarked line counts as one task.

        Raises:
            ParseError: if no task can be read from the response.
        """
        text = (response or "").strip()
        if not text:
            raise ParseError("Empty response", raw_output=response)

        items = self._parse_json_array(text)
        if items is None:
            self._logger.debug("No JSON task array found; trying line enumeration")
            items = self._parse_lines(text, allow_bare_line)

        tasks = self._clean(items)
        if not tasks:
            raise ParseError("No tasks found in response", raw_output=response)

        self._logger.debug("Parsed %d tasks", len(tasks))
        return tasks

    def split_result(self, response: str) -> Tuple[str, Optional[str]]:
        """Split an execution response into ``(result, new_tasks_section)``.

        The section starts at a "NEW TASKS:" style heading; text on the
        heading line after the colon belongs to the section.  Without a
        heading the whole response is the result and the section is None.
        """
        text = (response or "").strip()
        match = _NEW_TASKS_HEADING.search(text)
        if not match:
            return text, None
        result = text[: match.start()].strip()
        section = ((match.group(1) or "") + text[match.end():]).strip()
        return result, section

    # ------------------------------------------------------------------ #
    # Formats                                                             #
    # ------------------------------------------------------------------ #

    def _parse_json_array(self, text: str) -> Optional[List[str]]:
        """Return string items of the first parseable JSON array, or None."""
        candidates = []
        code_block = re.search(r"```(?:json)?\s*(\[.*?\])\s*```", text, re.DOTALL | re.IGNORECASE)
        if code_block:
            candidates.append(code_block.group(1))
        first = text.find("[")
        if first != -1:
            balanced = _extract_balanced_array(text, first)
            if balanced:
                candidates.append(balanced)

        for candidate in candidates:
            try:
                data = json.loads(candidate)
            except (json.JSONDecodeError, ValueError) as e:
                self._logger.debug("Candidate task array is not valid JSON: %s", e)
                continue
            if isinstance(data, list) and all(isinstance(item, str) for item in data):
                return data
        return None

    @staticmethod
    def _parse_lines(text: str, allow_bare_line: bool) -> List[str]:
        items: List[str] = []
        for line in text.splitlines():
            match = _LIST_MARKER.match(line)
            if match:
                items.append(match.group(1))
        if items or not allow_bare_line:
            return items
        lines = [line for line in text.splitlines() if line.strip()]
        if len(lines) == 1 and not lines[0].rstrip().endswith(":"):
            return lines
        return []

    @staticmethod
    def _clean(items: Iterable[str]) -> List[str]:
        seen = set()
        tasks: List[str] = []
        for item in items:
            task = item.strip().strip(_QUOTES).strip().rstrip(",").strip()
            task = re.sub(r"^\*\*(.+)\*\*$", r"\1", task)
            if not task or task.lower().rstrip(".!") in _PLACEHOLDERS:
                continue
            if task in seen:
                continue
            seen.add(task)
            tasks.append(task)
        return tasks


def _extract_balanced_array(text: str, start_pos: int) -> Optional[str]:
    """Extract a JSON array using balanced bracket matching."""
    depth = 0
    in_string = False
    escape_next = False

    for i, char in enumerate(text[start_pos:], start=start_pos):
        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if not in_string:
            if char == "[":
                depth += 1
            elif char == "]":
                depth -= 1
                if depth == 0:
                    return text[start_pos : i + 1]
    return None


def dedupe_against(candidates: Iterable[str], existing: Iterable[str]) -> List[str]:
    """Drop candidates whose description exactly matches an existing one."""
    known = set(existing)
    fresh: List[str] = []
    for description in candidates:
        if description in known:
            continue
        known.add(description)
        fresh.append(description)
    return fresh
