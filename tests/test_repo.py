"""Tests for the state repository."""

from datetime import datetime, timedelta

from promowatch.core.config.models import TargetConfig
from promowatch.core.normalize.identity import state_key
from promowatch.persistence.models import TargetState
from promowatch.persistence.repo import StateRepository, hash_promotions


URL = "https://deals.example.com/offers"


class TestTargets:
    def test_upsert_creates_then_updates(self, session):
        repo = StateRepository(session)

        target, created = repo.upsert_target(TargetConfig(url=URL, selector=".promo"))
        assert created
        assert target.id is not None

        target, created = repo.upsert_target(
            TargetConfig(url=URL, selector=".promo-card", name="Deals")
        )
        assert not created
        assert target.selector == ".promo-card"
        assert target.display_name == "Deals"

    def test_list_and_remove(self, session):
        repo = StateRepository(session)
        repo.upsert_target(TargetConfig(url="https://b.example.com/", selector=".promo"))
        repo.upsert_target(
            TargetConfig(url="https://a.example.com/", selector=".promo", enabled=False)
        )

        assert [t.url for t in repo.list_targets()] == [
            "https://a.example.com/",
            "https://b.example.com/",
        ]
        assert [t.url for t in repo.list_targets(enabled_only=True)] == ["https://b.example.com/"]

        assert repo.remove_target("https://a.example.com/")
        assert not repo.remove_target("https://a.example.com/")


class TestState:
    def test_missing_state(self, session):
        assert StateRepository(session).read_state(URL) is None

    def test_write_then_read(self, session, snapshot):
        repo = StateRepository(session)
        repo.write_state(URL, snapshot)

        state = repo.read_state(URL)
        assert state is not None
        assert state.promotions == tuple(snapshot)
        assert state.content_hash == hash_promotions(snapshot)

    def test_write_replaces(self, session, snapshot):
        repo = StateRepository(session)
        repo.write_state(URL, snapshot)
        repo.write_state(URL, snapshot[:1])
        assert repo.read_state(URL).promotions == tuple(snapshot[:1])

    def test_invalid_stored_state_reads_as_missing(self, session):
        session.add(TargetState(
            state_key=state_key(URL),
            url=URL,
            content_hash="abc",
            promotions=[{"id": "", "title": "x", "perk": "", "dates": "", "price": ""}],
        ))
        session.flush()
        assert StateRepository(session).read_state(URL) is None

    def test_delete_state(self, session, snapshot):
        repo = StateRepository(session)
        repo.write_state(URL, snapshot)
        assert repo.delete_state(URL)
        assert repo.read_state(URL) is None


class TestHistory:
    def test_snapshots_newest_first_and_pruned(self, session, snapshot):
        repo = StateRepository(session, history_keep=3)
        start = datetime(2025, 1, 1, 12, 0)
        for day in range(5):
            repo.store_and_prune_snapshot(
                URL,
                snapshot[: day % 3 + 1],
                taken_at=start + timedelta(days=day),
                summary=f"run {day}",
            )

        snapshots = repo.get_snapshots(URL, limit=10)
        assert [s.summary for s in snapshots] == ["run 4", "run 3", "run 2"]
        assert snapshots[0].key.startswith("hist:")

    def test_history_is_per_url(self, session, snapshot):
        repo = StateRepository(session)
        repo.store_snapshot(URL, snapshot)
        repo.store_snapshot("https://other.example.com/", snapshot)
        assert len(repo.get_snapshots(URL)) == 1
        assert repo.delete_history(URL) == 1
        assert repo.get_snapshots(URL) == []


def test_hash_promotions_is_order_sensitive(snapshot):
    assert hash_promotions(snapshot) == hash_promotions(list(snapshot))
    assert hash_promotions(snapshot) != hash_promotions(list(reversed(snapshot)))
