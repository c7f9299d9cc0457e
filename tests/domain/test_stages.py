"""
Tests for the stage pipeline declaration and the StageSet value object.

These tests verify:
- Pipeline order is declared once and exposed consistently
- Only the four in-process stages are editable
- StageSet rejects negative and non-integer counters
"""

import pytest

from stage_kernel.domain.stages import (
    DOWNSTREAM_STAGES,
    EDITABLE_STAGES,
    StageKey,
    StageSet,
)


class TestStageKey:

    def test_pipeline_order(self):
        assert [s.value for s in StageKey.ordered()] == [
            "foam",
            "upholstery",
            "assembly",
            "packaged",
            "stored",
            "shipped",
        ]

    def test_index_follows_declaration(self):
        assert StageKey.FOAM.index == 0
        assert StageKey.SHIPPED.index == 5
        assert StageKey.ASSEMBLY.index < StageKey.PACKAGED.index

    def test_editable_split(self):
        assert EDITABLE_STAGES == (
            StageKey.FOAM,
            StageKey.UPHOLSTERY,
            StageKey.ASSEMBLY,
            StageKey.PACKAGED,
        )
        assert DOWNSTREAM_STAGES == (StageKey.STORED, StageKey.SHIPPED)
        assert not StageKey.STORED.is_editable
        assert StageKey.PACKAGED.is_editable

    def test_earlier_is_nearest_first(self):
        assert StageKey.ASSEMBLY.earlier() == (StageKey.UPHOLSTERY, StageKey.FOAM)
        assert StageKey.FOAM.earlier() == ()

    def test_parse_is_case_insensitive(self):
        assert StageKey.parse(" Assembly ") is StageKey.ASSEMBLY
        assert StageKey.parse(StageKey.FOAM) is StageKey.FOAM

    def test_parse_unknown_raises_key_error(self):
        with pytest.raises(KeyError):
            StageKey.parse("painting")

    def test_labels(self):
        assert StageKey.FOAM.label == "Süngerde"
        assert StageKey.UPHOLSTERY.label == "Döşemede"
        assert StageKey.STORED.label == "Depoda"


class TestStageSet:

    def test_zero(self):
        assert StageSet.zero().total == 0

    def test_is_frozen(self):
        stages = StageSet(foam=1)
        with pytest.raises(AttributeError):
            stages.foam = 2

    def test_negative_counter_rejected(self):
        with pytest.raises(ValueError, match="negative"):
            StageSet(foam=-1)

    def test_bool_counter_rejected(self):
        with pytest.raises(ValueError, match="int"):
            StageSet(assembly=True)

    def test_float_counter_rejected(self):
        with pytest.raises(ValueError):
            StageSet(packaged=1.5)

    def test_from_mapping_accepts_names_and_keys(self):
        stages = StageSet.from_mapping({"foam": 2, StageKey.STORED: 3})
        assert stages == StageSet(foam=2, stored=3)

    def test_replace_returns_new_instance(self):
        before = StageSet(foam=2)
        after = before.replace(StageKey.FOAM, 5)
        assert before.foam == 2
        assert after.foam == 5

    def test_total_and_items(self):
        stages = StageSet(1, 2, 3, 4, 5, 6)
        assert stages.total == 21
        assert [stage for stage, _ in stages.items()] == list(StageKey.ordered())

    def test_diff_lists_changed_stages_only(self):
        before = StageSet(foam=3, upholstery=2)
        after = StageSet(assembly=5)
        assert before.diff(after) == {
            "foam": (3, 0),
            "upholstery": (2, 0),
            "assembly": (0, 5),
        }
