"""
Target runner orchestrator.

Coordinates the monitoring workflow for each target:
fetch → extract → diff → materiality filter → notify → persist.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

import httpx
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ...persistence.db import get_session
from ...persistence.repo import StateRepository, StoredState, hash_promotions
from ..config.models import AppConfig, TargetConfig
from ..detect.diff import detect_changes
from ..detect.materiality import MaterialityFilter
from ..detect.models import ChangeResult, Promotion, initial_result
from ..extract.html import PromotionExtractor
from ..fetch.http import fetch_content
from ..logging import get_contextual_logger
from ..notify.slack import format_slack_message, send_slack_notification


logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractContextManager[Session]]


@dataclass
class TargetResult:
    """Outcome of processing one target."""

    target: TargetConfig
    success: bool
    error: str | None = None
    changes: ChangeResult | None = None
    notification_sent: bool = False
    promotions: list[Promotion] = field(default_factory=list)
    duration_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.target.url,
            "name": self.target.name,
            "success": self.success,
            "error": self.error,
            "changes": self.changes.to_dict() if self.changes else None,
            "notification_sent": self.notification_sent,
            "promotions": len(self.promotions),
            "duration_ms": round(self.duration_ms, 1),
        }


@dataclass
class BatchResult:
    """Outcome of processing a set of targets."""

    total_targets: int = 0
    successful_targets: int = 0
    failed_targets: int = 0
    targets_with_changes: int = 0
    notifications_sent: int = 0
    results: list[TargetResult] = field(default_factory=list)
    duration_ms: float = 0.0
    summary: str = ""

    @classmethod
    def from_results(cls, results: list[TargetResult], duration_ms: float) -> "BatchResult":
        total = len(results)
        successful = sum(1 for r in results if r.success)
        with_changes = sum(1 for r in results if r.success and r.changes and r.changes.has_changes)
        notified = sum(1 for r in results if r.notification_sent)
        return cls(
            total_targets=total,
            successful_targets=successful,
            failed_targets=total - successful,
            targets_with_changes=with_changes,
            notifications_sent=notified,
            results=results,
            duration_ms=duration_ms,
            summary=generate_batch_summary(total, successful, total - successful, with_changes, notified),
        )


def generate_batch_summary(
    total: int,
    successful: int,
    failed: int,
    with_changes: int,
    notifications: int,
) -> str:
    """E.g. '3 targets processed, 2 successful, 1 failed, 1 with changes, 1 notification sent'."""
    parts = [f"{total} target{'' if total == 1 else 's'} processed"]
    if successful:
        parts.append(f"{successful} successful")
    if failed:
        parts.append(f"{failed} failed")
    if with_changes:
        parts.append(f"{with_changes} with changes")
    if notifications:
        parts.append(f"{notifications} notification{'' if notifications == 1 else 's'} sent")
    return ", ".join(parts)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class TargetRunner:
    """Runs the monitoring workflow for targets.

    Each stage is isolated: fetch and extraction failures fail the target;
    an unreadable previous state counts as a first run; notification and
    storage write failures are logged without failing the target.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        session_factory: SessionFactory = get_session,
        client: httpx.AsyncClient | None = None,
        dry_run: bool = False,
    ) -> None:
        """Initialize the runner.

        Args:
            config: Application configuration
            session_factory: Context manager yielding a database session
            client: Shared HTTP client for fetches and notifications
            dry_run: If True, don't notify or persist
        """
        self.config = config or AppConfig()
        self.session_factory = session_factory
        self.client = client
        self.dry_run = dry_run
        self.run_id = uuid.uuid4().hex[:8]

        self.extractor = PromotionExtractor(self.config.detection)
        self.materiality = MaterialityFilter(
            self.config.detection, normalizer=self.extractor.normalizer
        )

    def _repository(self, session: Session) -> StateRepository:
        return StateRepository(session, history_keep=self.config.storage.history_keep)

    def _read_state(self, url: str) -> StoredState | None:
        with self.session_factory() as session:
            return self._repository(session).read_state(url)

    async def process_target(self, target: TargetConfig) -> TargetResult:
        """Fetch, diff, notify, and persist one target."""
        started = time.perf_counter()
        log = get_contextual_logger("orchestrator", target=target.display_name, run_id=self.run_id)
        log.info("Processing target")

        try:
            try:
                html = await fetch_content(target.url, config=self.config.fetch, client=self.client)
            except Exception as e:
                log.warning("Fetch failed: %s", e)
                return TargetResult(
                    target=target,
                    success=False,
                    error=f"Failed to fetch content: {e}",
                    duration_ms=_elapsed_ms(started),
                )

            try:
                promotions = self.extractor.extract(html, target.selector)
            except Exception as e:
                log.warning("Extraction failed: %s", e)
                return TargetResult(
                    target=target,
                    success=False,
                    error=f"Failed to parse promotions: {e}",
                    duration_ms=_elapsed_ms(started),
                )

            content_hash = hash_promotions(promotions)
            now = datetime.now(timezone.utc)

            try:
                previous = await asyncio.to_thread(self._read_state, target.url)
            except Exception as e:
                log.warning("Could not read previous state, treating as first run: %s", e)
                previous = None

            if previous is None:
                changes = initial_result()
            else:
                changes = self.materiality.filter(detect_changes(
                    promotions, previous.promotions, normalizer=self.extractor.normalizer
                ))

            notification_sent = await self._notify(target, changes, now, log)

            if not self.dry_run:
                await asyncio.to_thread(
                    self._persist, target, promotions, content_hash, changes, now, log
                )

            if changes.has_changes:
                log.info(changes.summary)

            return TargetResult(
                target=target,
                success=True,
                changes=changes,
                notification_sent=notification_sent,
                promotions=promotions,
                duration_ms=_elapsed_ms(started),
            )

        except Exception as e:
            log.exception("Unexpected error")
            return TargetResult(
                target=target,
                success=False,
                error=f"Unexpected error: {e}",
                duration_ms=_elapsed_ms(started),
            )

    async def _notify(
        self,
        target: TargetConfig,
        changes: ChangeResult,
        now: datetime,
        log: logging.LoggerAdapter,
    ) -> bool:
        webhook = self.config.notification.slack_webhook
        if not changes.has_changes or not webhook or self.dry_run:
            return False

        message = format_slack_message(
            target.name,
            target.url,
            changes,
            now,
            config=self.config.notification,
        )
        try:
            await send_slack_notification(
                webhook,
                message,
                timeout=self.config.notification.timeout_seconds,
                client=self.client,
            )
        except Exception as e:
            log.error("Failed to send notification: %s", e)
            return False

        log.info("Notification sent: %s", changes.summary)
        return True

    def _persist(
        self,
        target: TargetConfig,
        promotions: list[Promotion],
        content_hash: str,
        changes: ChangeResult,
        now: datetime,
        log: logging.LoggerAdapter,
    ) -> None:
        """Write current state and, when something changed, a history snapshot.

        Called from a worker thread.
        """
        try:
            with self.session_factory() as session:
                self._repository(session).write_state(
                    target.url, promotions, content_hash=content_hash, seen_at=now
                )
        except Exception as e:
            log.error("Failed to update state: %s", e)

        if not changes.has_changes:
            return

        try:
            with self.session_factory() as session:
                self._repository(session).store_and_prune_snapshot(
                    target.url,
                    promotions,
                    content_hash=content_hash,
                    taken_at=now,
                    summary=changes.summary,
                )
        except Exception as e:
            log.error("Failed to store historical snapshot: %s", e)

    def load_targets(self) -> list[TargetConfig]:
        """Enabled targets from storage; rows that no longer validate are skipped."""
        with self.session_factory() as session:
            rows = self._repository(session).list_targets(enabled_only=True)
            targets = []
            for row in rows:
                try:
                    target = TargetConfig.model_validate(row, from_attributes=True)
                except ValidationError as e:
                    logger.warning("Skipping invalid target %s: %s", row.url, e)
                    continue
                targets.append(target)
        return targets

    async def process_batch(self, targets: Sequence[TargetConfig] | None = None) -> BatchResult:
        """Process targets concurrently (bounded by fetch.max_concurrency).

        Args:
            targets: Targets to process (default: enabled targets in storage)
        """
        started = time.perf_counter()

        if targets is None:
            try:
                targets = await asyncio.to_thread(self.load_targets)
            except Exception as e:
                logger.error("Failed to read targets: %s", e)
                return BatchResult(
                    duration_ms=_elapsed_ms(started),
                    summary=f"Failed to read targets configuration: {e}",
                )

        enabled = [t for t in targets if t.enabled]
        if not enabled:
            return BatchResult(
                duration_ms=_elapsed_ms(started),
                summary="No enabled targets found in configuration",
            )

        logger.info("Processing %d enabled targets", len(enabled))
        semaphore = asyncio.Semaphore(self.config.fetch.max_concurrency)

        async def run_one(target: TargetConfig) -> TargetResult:
            async with semaphore:
                try:
                    return await self.process_target(target)
                except Exception as e:
                    return TargetResult(target=target, success=False, error=f"Processing failed: {e}")

        owns_client = self.client is None
        if owns_client:
            self.client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.fetch.timeout_seconds),
                follow_redirects=True,
            )
        try:
            results = list(await asyncio.gather(*(run_one(t) for t in enabled)))
        finally:
            if owns_client and self.client is not None:
                await self.client.aclose()
                self.client = None

        batch = BatchResult.from_results(results, _elapsed_ms(started))
        logger.info("Batch processing completed: %s", batch.summary)
        for result in results:
            if not result.success:
                logger.error("Target %s failed: %s", result.target.display_name, result.error)
        return batch


async def run_targets(
    config: AppConfig,
    targets: Sequence[TargetConfig] | None = None,
    *,
    dry_run: bool = False,
) -> BatchResult:
    """Convenience function to process targets with a fresh runner."""
    runner = TargetRunner(config, dry_run=dry_run)
    return await runner.process_batch(targets)
