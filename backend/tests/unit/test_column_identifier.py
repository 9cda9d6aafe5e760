from __future__ import annotations

import pytest

from orgchart.services.column_identifier import (
    ColumnIdentifier,
    calculate_manager_score,
    calculate_name_score,
    cell_to_str,
)


@pytest.fixture
def identifier():
    return ColumnIdentifier()


def test_identify_by_header_patterns(identifier, org_rows):
    result = identifier.identify(org_rows)

    assert result.name_column == 0
    assert result.title_column == 1
    assert result.manager_column == 2
    assert result.confidence == 1.0
    assert 'Found name column "Employee Name" at index 0.' in result.analysis


def test_identify_name_only_has_partial_confidence(identifier):
    data = [["Name", "Department"], ["Ada Lovelace", "Executive"]]
    result = identifier.identify(data)

    assert result.name_column == 0
    assert result.manager_column is None
    assert result.confidence == pytest.approx(0.4)


def test_identify_falls_back_to_column_contents(identifier):
    data = [
        ["Col A", "Col B", "Col C"],
        ["Ada Lovelace", "", "1001"],
        ["Grace Hopper", "Ada Lovelace", "1002"],
        ["Alan Turing", "Ada Lovelace", "1003"],
        ["Linus Torvalds", "Grace Hopper", "1004"],
        ["Barbara Liskov", "Grace Hopper", "1005"],
    ]
    result = identifier.identify(data)

    assert result.name_column == 0
    assert result.manager_column == 1
    assert result.title_column is None
    assert result.confidence == pytest.approx(0.6)
    assert "Fallback identified name column at index 0." in result.analysis


def test_fallback_skips_columns_claimed_by_headers(identifier):
    data = [
        ["Title", "Col B"],
        ["Chief Executive", "Ada Lovelace"],
        ["Vice President", "Grace Hopper"],
    ]
    result = identifier.identify(data)

    assert result.title_column == 0
    assert result.name_column == 1


def test_identify_empty_data(identifier):
    result = identifier.identify([])
    assert result.name_column is None
    assert result.confidence == 0.0
    assert result.analysis == "No data provided"


def test_identify_empty_headers(identifier):
    result = identifier.identify([[]])
    assert result.analysis == "No headers found"


def test_identify_unrecognizable_columns(identifier):
    data = [["a", "b"], ["1", "2"], ["3", "4"]]
    result = identifier.identify(data)

    assert result.name_column is None
    assert result.manager_column is None
    assert result.confidence == 0.0
    assert result.analysis == "No recognizable name, manager or title columns found."


def test_name_score_prefers_multi_word_names():
    assert calculate_name_score(["Ada Lovelace", "Grace Hopper"]) == pytest.approx(0.8)
    assert calculate_name_score(["Ada", "Grace"]) == pytest.approx(0.5)
    assert calculate_name_score(["E-1001", "#42"]) == 0.0
    assert calculate_name_score(["", ""]) == 0.0


def test_manager_score_rewards_repeated_values():
    repeated = ["Ada Lovelace", "Ada Lovelace", "Grace Hopper", "Grace Hopper"]
    unique = ["Ada Lovelace", "Grace Hopper", "Alan Turing", "Linus Torvalds"]

    assert calculate_manager_score(repeated) == pytest.approx(1.0)
    assert calculate_manager_score(unique) == pytest.approx(0.8)
    assert calculate_manager_score([]) == 0.0


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, ""),
        ("  Ada  ", "Ada"),
        (42.0, "42"),
        (4.5, "4.5"),
        (7, "7"),
    ],
)
def test_cell_to_str(value, expected):
    assert cell_to_str(value) == expected


def test_name_title_manager_headers(identifier):
    result = identifier.identify([["Name", "Title", "Manager"], ["CEO", "Chief", ""]])

    assert result.name_column == 0
    assert result.title_column == 1
    assert result.manager_column == 2
    assert result.confidence > 0.5
