from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Optional

from ...constants import CATEGORIES
from ...errors import MalformedResponse

_FENCED = re.compile(r"```(?:json)?\s*\n(.*?)```", re.DOTALL)
_OBJECT = re.compile(r"\{[\s\S]*\}")


@dataclass
class Classification:
    category: Optional[str]
    description: Optional[str]
    importance: Optional[int]


class ResponseParser:
    """Parse LLM responses into structured payloads."""

    VALID_CATEGORIES = frozenset(CATEGORIES)
    MIN_IMPORTANCE = 1
    MAX_IMPORTANCE = 5

    def extract_json(self, response_text: str) -> dict:
        """
        Extract the JSON object from a response.

        Handles:
        - A bare JSON object
        - Markdown code blocks containing JSON
        - Prose around the outermost {...} span

        Raises MalformedResponse when no object can be parsed.
        """
        raw = response_text or ""
        if not raw.strip():
            raise MalformedResponse("Empty response")

        candidates = []
        fenced = _FENCED.search(raw)
        if fenced:
            candidates.append(fenced.group(1).strip())
        span = _OBJECT.search(raw)
        if span:
            candidates.append(span.group(0))

        last_error = "No JSON object found in response"
        for candidate in candidates:
            try:
                parsed = json.loads(candidate)
            except json.JSONDecodeError as exc:
                last_error = f"Invalid JSON - {exc}"
                continue
            if isinstance(parsed, dict):
                return parsed
            last_error = "JSON payload is not an object"

        raise MalformedResponse(f"{last_error}. Raw response: {raw[:200]}")

    def parse_classification(self, data: dict) -> Classification:
        """Normalize a Pass-1 payload; invalid fields become None."""
        category = data.get("category")
        if isinstance(category, str):
            category = category.strip().lower()
        if category not in self.VALID_CATEGORIES:
            category = None

        description = data.get("description")
        if not isinstance(description, str) or not description.strip():
            description = None
        else:
            description = description.strip()

        return Classification(
            category=category,
            description=description,
            importance=self._coerce_importance(data.get("importance")),
        )

    def _coerce_importance(self, value: Any) -> Optional[int]:
        if isinstance(value, bool):
            return None
        try:
            importance = int(value)
        except (TypeError, ValueError):
            return None
        if importance < self.MIN_IMPORTANCE:
            return None
        return min(importance, self.MAX_IMPORTANCE)
