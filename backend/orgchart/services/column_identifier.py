"""Infer the name, manager and title columns of an uploaded employee grid."""

from __future__ import annotations

import logging
import re
from typing import Any

from orgchart.models.hierarchy import ColumnIdentification

logger = logging.getLogger(__name__)

PATTERN_MATCH_BOOST = 0.4
FALLBACK_BOOST = 0.2
BOTH_COLUMNS_BONUS = 0.2
NAME_SCORE_THRESHOLD = 0.6
MANAGER_SCORE_THRESHOLD = 0.5

FALLBACK_SAMPLE_ROWS = 5
MANAGER_UNIQUENESS_CUTOFF = 0.8
MANAGER_REPEAT_BONUS = 0.2

NAME_PATTERNS = (
    re.compile(r"^name$", re.IGNORECASE),
    re.compile(r"^employee.*name$", re.IGNORECASE),
    re.compile(r"^full.*name$", re.IGNORECASE),
    re.compile(r"^first.*name$", re.IGNORECASE),
    re.compile(r"^employee$", re.IGNORECASE),
    re.compile(r"^person$", re.IGNORECASE),
    re.compile(r"^staff$", re.IGNORECASE),
)

MANAGER_PATTERNS = (
    re.compile(r"^manager$", re.IGNORECASE),
    re.compile(r"^manager.*name$", re.IGNORECASE),
    re.compile(r"^supervisor$", re.IGNORECASE),
    re.compile(r"^boss$", re.IGNORECASE),
    re.compile(r"^reports.*to$", re.IGNORECASE),
    re.compile(r"^direct.*manager$", re.IGNORECASE),
    re.compile(r"^line.*manager$", re.IGNORECASE),
)

TITLE_PATTERNS = (
    re.compile(r"^title$", re.IGNORECASE),
    re.compile(r"^job.*title$", re.IGNORECASE),
    re.compile(r"^position$", re.IGNORECASE),
    re.compile(r"^role$", re.IGNORECASE),
    re.compile(r"^designation$", re.IGNORECASE),
    re.compile(r"^rank$", re.IGNORECASE),
    re.compile(r"^level$", re.IGNORECASE),
)

_NAME_LIKE = re.compile(r"^[a-zA-Z\s'-]+$")
_NOT_NAME_LIKE = re.compile(r"[0-9@#$%^&*()_+=\[\]{}|;:,.<>?/~`]")

# Per-value weights for the content fallback
_LETTERS_SCORE = 0.5
_MULTI_WORD_BONUS = 0.3
_SYMBOL_PENALTY = 0.2


def cell_to_str(value: Any) -> str:
    """Render a raw grid cell as stripped text; blanks become ``""``."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def calculate_name_score(values: list[str]) -> float:
    valid = [v for v in values if v]
    if not valid:
        return 0.0

    score = 0.0
    for value in valid:
        if _NAME_LIKE.match(value) and len(value) > 1:
            score += _LETTERS_SCORE
        if len(value.split()) >= 2:
            score += _MULTI_WORD_BONUS
        if _NOT_NAME_LIKE.search(value):
            score -= _SYMBOL_PENALTY

    return max(0.0, min(1.0, score / len(valid)))


def calculate_manager_score(values: list[str]) -> float:
    valid = [v for v in values if v]
    if not valid:
        return 0.0

    name_score = calculate_name_score(valid)
    # Managers repeat: one manager per several rows
    uniqueness = len(set(valid)) / len(valid)
    bonus = MANAGER_REPEAT_BONUS if uniqueness < MANAGER_UNIQUENESS_CUTOFF else 0.0
    return min(1.0, name_score + bonus)


def _match_header(headers: list[str], patterns: tuple[re.Pattern[str], ...]) -> int | None:
    for index, header in enumerate(headers):
        if any(pattern.match(header) for pattern in patterns):
            return index
    return None


class ColumnIdentifier:
    def _column_values(self, data: list[list[Any]], column: int) -> list[str]:
        sample = data[1 : 1 + FALLBACK_SAMPLE_ROWS]
        return [cell_to_str(row[column]) if column < len(row) else "" for row in sample]

    def apply_fallback(
        self,
        data: list[list[Any]],
        claimed: set[int],
        need_name: bool,
        need_manager: bool,
    ) -> tuple[int | None, int | None]:
        """Score unclaimed columns by content when header patterns found nothing."""
        if len(data) < 2:
            return None, None

        width = len(data[0])
        name_column: int | None = None
        manager_column: int | None = None

        if need_name:
            for column in range(width):
                if column in claimed:
                    continue
                if calculate_name_score(self._column_values(data, column)) > NAME_SCORE_THRESHOLD:
                    name_column = column
                    break

        if need_manager:
            for column in range(width):
                if column in claimed or column == name_column:
                    continue
                if calculate_manager_score(self._column_values(data, column)) > MANAGER_SCORE_THRESHOLD:
                    manager_column = column
                    break

        return name_column, manager_column

    def identify(self, data: list[list[Any]]) -> ColumnIdentification:
        if not data:
            return ColumnIdentification(analysis="No data provided")

        headers = [cell_to_str(h) for h in data[0]]
        if not headers:
            return ColumnIdentification(analysis="No headers found")

        confidence = 0.0
        notes: list[str] = []

        name_column = _match_header(headers, NAME_PATTERNS)
        manager_column = _match_header(headers, MANAGER_PATTERNS)
        title_column = _match_header(headers, TITLE_PATTERNS)

        for label, column in (("name", name_column), ("manager", manager_column), ("title", title_column)):
            if column is not None:
                confidence += PATTERN_MATCH_BOOST
                notes.append(f'Found {label} column "{headers[column]}" at index {column}.')

        if name_column is None or manager_column is None:
            claimed = {c for c in (name_column, manager_column, title_column) if c is not None}
            fallback_name, fallback_manager = self.apply_fallback(
                data,
                claimed,
                need_name=name_column is None,
                need_manager=manager_column is None,
            )
            if fallback_name is not None:
                name_column = fallback_name
                confidence += FALLBACK_BOOST
                notes.append(f"Fallback identified name column at index {name_column}.")
            if fallback_manager is not None:
                manager_column = fallback_manager
                confidence += FALLBACK_BOOST
                notes.append(f"Fallback identified manager column at index {manager_column}.")

        if name_column is not None and manager_column is not None:
            confidence += BOTH_COLUMNS_BONUS

        if not notes:
            notes.append("No recognizable name, manager or title columns found.")

        result = ColumnIdentification(
            name_column=name_column,
            manager_column=manager_column,
            title_column=title_column,
            confidence=round(min(confidence, 1.0), 4),
            analysis=" ".join(notes),
        )
        logger.debug(
            "Column identification: name=%s manager=%s title=%s confidence=%.2f",
            name_column,
            manager_column,
            title_column,
            result.confidence,
        )
        return result


column_identifier = ColumnIdentifier()
