"""Tests for promotion ids and storage keys."""

import re

from promowatch.core.normalize.identity import (
    assign_ids,
    generate_promotion_id,
    hash_string,
    history_key,
    state_key,
)


HEX_ID = re.compile(r"^[0-9a-f]{16}$")


def test_hash_string_is_truncated_sha256():
    assert HEX_ID.match(hash_string("hello"))
    assert hash_string("hello") == "2cf24dba5fb0a30e"


class TestGeneratePromotionId:
    def test_deterministic(self):
        first = generate_promotion_id("Hawaii Package", "Free breakfast", "03/15/2025", "$1,299")
        second = generate_promotion_id("Hawaii Package", "Free breakfast", "03/15/2025", "$1,299")
        assert first == second
        assert HEX_ID.match(first)

    def test_ignores_whitespace_and_timestamps(self):
        plain = generate_promotion_id("Hawaii Package", "Free breakfast", "", "$1,299")
        noisy = generate_promotion_id(
            "  Hawaii   Package ", "Free breakfast (updated 01/08/2025)", None, "$1,299"
        )
        assert plain == noisy

    def test_semantic_change_changes_id(self):
        before = generate_promotion_id("Hawaii Package", "Free breakfast", "", "$1,299")
        after = generate_promotion_id("Hawaii Package", "Free breakfast", "", "$1,399")
        assert before != after

    def test_restricted_fields(self):
        before = generate_promotion_id(
            "Hawaii Package", "Free breakfast", "", "$1,299", fields=("title",)
        )
        after = generate_promotion_id(
            "Hawaii Package", "Free dinner", "", "$1,399", fields=("title",)
        )
        assert before == after


class TestAssignIds:
    def test_title_identity_survives_price_change(self):
        first = assign_ids([{"title": "Hawaii Package", "price": "$1,299"}])
        second = assign_ids([{"title": "Hawaii Package", "price": "$1,399"}])
        assert first == second

    def test_shared_title_falls_back_to_full_content(self):
        ids = assign_ids([
            {"title": "Weekend Getaway", "price": "$299"},
            {"title": "Weekend Getaway", "price": "$399"},
        ])
        assert len(set(ids)) == 2
        assert ids[1] == generate_promotion_id("Weekend Getaway", "", "", "$399")

    def test_exact_duplicates_get_ordinal_suffix(self):
        draft = {"title": "Weekend Getaway", "perk": "Free parking"}
        ids = assign_ids([draft, draft, draft])
        assert len(set(ids)) == 3
        full = generate_promotion_id("Weekend Getaway", "Free parking", "", "")
        assert ids[1] == full
        assert ids[2] == f"{full}-2"

    def test_all_fields_identity(self):
        ids = assign_ids(
            [{"title": "Hawaii Package", "price": "$1,299"}],
            identity_fields=("title", "perk", "dates", "price"),
        )
        assert ids == [generate_promotion_id("Hawaii Package", "", "", "$1,299")]


def test_storage_keys():
    url = "https://deals.example.com/offers"
    assert state_key(url) == f"state:{hash_string(url)}"
    assert history_key(url, "2025-01-08T10:00:00") == f"hist:{hash_string(url)}:2025-01-08T10:00:00"
