"""
Abstract base class for pipeline stages.

Every stage follows the same contract:
  1. Receive ``AppConfig`` at construction.
  2. ``run(**kwargs)`` is the sole public API.
  3. ``run()`` creates a ``RunMetadata`` record, calls ``_execute()``,
     and returns the record with its final status.
  4. ``_execute()`` is the stage-specific implementation.

Stages never swallow exceptions: a failure is recorded on the run record,
logged, and re-raised for the CLI to map onto an exit code.

Usage::

    class MyStage(PipelineStage):
        stage_name = "fetch"

        def _execute(self, run: RunMetadata, **kwargs) -> int:
            return 42

    run = MyStage(config=app_config).run()
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from uuid import uuid4

from osu_leaderboard.config import AppConfig
from osu_leaderboard.models.meta import RunMetadata
from osu_leaderboard.utils.logging import run_context
from osu_leaderboard.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class PipelineStage(ABC):
    """Abstract base for pipeline stages.

    Attributes:
        stage_name: Identifier matching a valid ``RunMetadata.pipeline_stage``.
        config: The application configuration for this run.
    """

    stage_name: str

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def run(self, **kwargs) -> RunMetadata:
        """Execute this stage.

        Args:
            **kwargs: Stage-specific keyword arguments passed to ``_execute()``.

        Returns:
            ``RunMetadata`` with ``status='success'``, ``rows_processed`` and
            ``finished_at`` set.

        Raises:
            Exception: Re-raises any exception from ``_execute()`` after
                marking the run record failed.
        """
        run = RunMetadata(
            run_slug=str(uuid4()),
            pipeline_stage=self.stage_name,
            country=self.config.country,
            config_snapshot=self.config.model_dump(mode="json"),
            started_at=utcnow(),
        )
        context = run_context(run.run_slug, run.country)
        logger.info(
            "Stage [%s] starting | country=%s | run_slug=%s",
            self.stage_name, run.country, run.run_slug,
            extra=context,
        )

        try:
            rows = self._execute(run=run, **kwargs)
        except Exception as exc:
            run.status = "failed"
            run.error_message = str(exc)
            run.finished_at = utcnow()
            logger.error(
                "Stage [%s] FAILED: %s | run_slug=%s",
                self.stage_name, exc, run.run_slug,
                extra=context,
            )
            raise

        run.status = "success"
        run.rows_processed = rows
        run.finished_at = utcnow()
        logger.info(
            "Stage [%s] completed | rows=%d | source=%s | run_slug=%s",
            self.stage_name, rows, run.source, run.run_slug,
            extra=context,
        )
        return run

    @abstractmethod
    def _execute(self, run: RunMetadata, **kwargs) -> int:
        """Stage-specific implementation.

        Args:
            run: The in-progress ``RunMetadata`` record (mutable).
            **kwargs: Stage-specific parameters.

        Returns:
            Number of records processed.
        """
        ...
