"""Tests for snapshot diffing and summaries."""

from dataclasses import replace

import pytest

from promowatch.core.detect.diff import detect_changes, generate_summary, promotions_equal
from promowatch.core.detect.models import ChangeResult, Promotion


class TestGenerateSummary:
    @pytest.mark.parametrize(
        "counts,expected",
        [
            ((0, 0, 0), "No changes detected"),
            ((1, 0, 0), "1 new promotion"),
            ((2, 0, 0), "2 new promotions"),
            ((0, 1, 0), "1 promotion removed"),
            ((0, 3, 0), "3 promotions removed"),
            ((0, 0, 1), "1 promotion updated"),
            ((0, 0, 2), "2 promotions updated"),
            ((1, 0, 1), "1 new promotion and 1 promotion updated"),
            ((2, 1, 1), "2 new promotions, 1 promotion removed, and 1 promotion updated"),
        ],
    )
    def test_phrasing(self, counts, expected):
        assert generate_summary(*counts) == expected

    def test_custom_empty_message(self):
        assert generate_summary(0, 0, 0, empty_message="Nothing") == "Nothing"


class TestDetectChanges:
    def test_identical_snapshots(self, snapshot):
        result = detect_changes(snapshot, list(snapshot))
        assert not result.has_changes
        assert result.summary == "No changes detected"
        assert result.added == result.removed == result.changed == ()

    def test_both_empty(self):
        result = detect_changes([], [])
        assert result == ChangeResult()

    def test_first_snapshot_everything_added(self, snapshot):
        result = detect_changes(snapshot, [])
        assert result.added == tuple(snapshot)
        assert result.summary == "3 new promotions"

    def test_everything_removed(self, snapshot):
        result = detect_changes([], snapshot)
        assert result.removed == tuple(snapshot)
        assert result.summary == "3 promotions removed"

    def test_changed_field(self, snapshot):
        current = list(snapshot)
        current[0] = replace(current[0], price="$1,499")
        result = detect_changes(current, snapshot)
        assert len(result.changed) == 1
        change = result.changed[0]
        assert change.previous.price == "$1,299"
        assert change.current.price == "$1,499"
        assert change.changed_fields() == ["price"]
        assert result.summary == "1 promotion updated"

    def test_cosmetic_difference_is_not_a_change(self, snapshot):
        current = list(snapshot)
        current[0] = replace(current[0], perk="  Free breakfast for two (updated 01/08/2025) ")
        result = detect_changes(current, snapshot)
        assert not result.has_changes

    def test_count_in_perk_is_a_change(self, snapshot):
        previous = [replace(snapshot[0], perk="Includes 3 spa visits")]
        current = [replace(snapshot[0], perk="Includes 5 spa visits")]
        result = detect_changes(current, previous)
        assert result.summary == "1 promotion updated"
        assert result.changed[0].changed_fields() == ["perk"]

    def test_promo_code_is_a_change(self, snapshot):
        previous = [replace(snapshot[0], perk="Use code SPRING2025SAVE for 10% off")]
        current = [replace(snapshot[0], perk="Use code SUMMER2025SAVE for 10% off")]
        assert detect_changes(current, previous).has_changes

    def test_combined(self, snapshot):
        current = [
            replace(snapshot[0], perk="Free breakfast and dinner"),
            snapshot[1],
            Promotion(id="promo-4", title="Tokyo Explorer", perk="Free rail pass"),
            Promotion(id="promo-5", title="Iceland Adventure", perk="Free glacier tour"),
        ]
        result = detect_changes(current, snapshot)
        assert [p.id for p in result.added] == ["promo-4", "promo-5"]
        assert [p.id for p in result.removed] == ["promo-3"]
        assert [c.id for c in result.changed] == ["promo-1"]
        assert result.summary == "2 new promotions, 1 promotion removed, and 1 promotion updated"

    def test_ordering_follows_snapshots(self, snapshot):
        current = [
            Promotion(id="z", title="Zanzibar"),
            Promotion(id="a", title="Amsterdam"),
        ]
        result = detect_changes(current, list(reversed(snapshot)))
        assert [p.id for p in result.added] == ["z", "a"]
        assert [p.id for p in result.removed] == ["promo-3", "promo-2", "promo-1"]

    def test_partition_by_id(self, snapshot):
        current = [snapshot[0], Promotion(id="promo-9", title="New Deal")]
        result = detect_changes(current, snapshot)
        added = {p.id for p in result.added}
        removed = {p.id for p in result.removed}
        changed = {c.id for c in result.changed}
        assert added.isdisjoint(removed)
        assert added.isdisjoint(changed)
        assert removed.isdisjoint(changed)
        assert added == {"promo-9"}
        assert removed == {"promo-2", "promo-3"}

    def test_same_content_different_id(self):
        previous = [Promotion(id="old", title="Hawaii Package")]
        current = [Promotion(id="new", title="Hawaii Package")]
        result = detect_changes(current, previous)
        assert [p.id for p in result.added] == ["new"]
        assert [p.id for p in result.removed] == ["old"]

    def test_accepts_plain_dicts_with_missing_fields(self):
        previous = [{"id": "p1", "title": "Hawaii Package", "price": None}]
        current = [{"id": "p1", "title": "Hawaii Package", "price": ""}]
        result = detect_changes(current, previous)
        assert not result.has_changes

    def test_inputs_not_mutated(self, snapshot):
        before = list(snapshot)
        detect_changes([], snapshot)
        assert snapshot == before


def test_promotions_equal_uses_normalized_fields(promotion):
    noisy = replace(promotion, title=f"  {promotion.title}\n")
    assert promotions_equal(promotion, noisy)
    assert not promotions_equal(promotion, replace(promotion, price="$999"))


def test_result_round_trips_through_dict(snapshot):
    current = [replace(snapshot[0], price="$1,499"), Promotion(id="n", title="New")]
    result = detect_changes(current, snapshot)
    assert ChangeResult.from_dict(result.to_dict()) == result
