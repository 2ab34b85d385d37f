"""Shared fixtures for the PromoWatch test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from promowatch.core.config.loader import CONFIG_ENV_VAR
from promowatch.core.detect.models import Promotion
from promowatch.persistence.db import dispose_engine, get_session, init_db


@pytest.fixture
def promotion() -> Promotion:
    return Promotion(
        id="hawaii-1",
        title="Hawaii Vacation Package",
        perk="Free breakfast for two",
        dates="03/15/2025",
        price="$1,299 per person",
    )


@pytest.fixture
def snapshot() -> list[Promotion]:
    """A previous snapshot with stable ids."""
    return [
        Promotion(
            id="promo-1",
            title="Hawaii Vacation Package",
            perk="Free breakfast for two",
            dates="03/15/2025",
            price="$1,299",
        ),
        Promotion(
            id="promo-2",
            title="Caribbean Cruise",
            perk="Free drinks package",
            dates="June 2025",
            price="From $899",
        ),
        Promotion(
            id="promo-3",
            title="Paris City Break",
            perk="Complimentary museum pass",
            dates="Valid through 09/30/2025",
            price="$749",
        ),
    ]


@pytest.fixture
def db_url(tmp_path: Path):
    """A fresh SQLite database; the global engine is reset around the test."""
    url = f"sqlite:///{tmp_path / 'promowatch.db'}"
    dispose_engine()
    init_db(url)
    yield url
    dispose_engine()


@pytest.fixture
def session(db_url: str):
    with get_session() as session:
        yield session


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A minimal config file exported through $PROMOWATCH_CONFIG."""
    path = tmp_path / "promowatch.yaml"
    path.write_text(
        "\n".join([
            f"data_dir: {tmp_path / 'data'}",
            "storage:",
            f"  url: sqlite:///{tmp_path / 'cli.db'}",
            "logging:",
            "  level: WARNING",
            "  file: null",
            "fetch:",
            "  retry_backoff: 0",
            "",
        ]),
        encoding="utf-8",
    )
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    dispose_engine()
    yield path
    dispose_engine()
