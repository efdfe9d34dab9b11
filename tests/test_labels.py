import logging

import pytest

from palmlines.labels import LINE_LABELS, normalize_line_label
from palmlines.types import LineType


@pytest.mark.parametrize("line_type", list(LineType))
def test_canonical_labels_are_idempotent(line_type):
    assert normalize_line_label(line_type.value) is line_type
    assert normalize_line_label(line_type) is line_type


@pytest.mark.parametrize(
    "label",
    ["heart", "Heart_Line", "heart-line", "HEARTLINE", "HeartLine", "heart line", " Heart.Line ", "heart_line"],
)
def test_heart_variants(label):
    assert normalize_line_label(label) is LineType.HEART


@pytest.mark.parametrize(
    "label,expected",
    [
        ("head_line", LineType.HEAD),
        ("Life-Line", LineType.LIFE),
        ("lifeline", LineType.LIFE),
        ("FATE LINE", LineType.FATE),
        ("destiny_line", LineType.FATE),
        ("Sun", LineType.SUN),
        ("apollo-line", LineType.SUN),
        ("marriage_line", LineType.MARRIAGE),
    ],
)
def test_other_variants(label, expected):
    assert normalize_line_label(label) is expected


@pytest.mark.parametrize("label", ["palm", "line", "", "heartbreak", "thumb_line", "mercury"])
def test_unknown_labels_dropped_with_warning(label, caplog):
    with caplog.at_level(logging.WARNING, logger="palmlines.labels"):
        assert normalize_line_label(label) is None
    assert "unknown class label" in caplog.text


def test_non_string_label():
    assert normalize_line_label(None) is None
    assert normalize_line_label(3) is None


def test_table_covers_every_line_type():
    assert set(LINE_LABELS.values()) == set(LineType)
