"""
Run metadata: the audit record for one pipeline stage execution.

``RunMetadata`` is the only model in the package that is NOT frozen: its
``status``, ``rows_processed``, ``source``, ``snapshot_path``,
``content_hash``, ``error_message`` and ``finished_at`` fields are updated
as the stage executes.

``config_snapshot`` holds ``AppConfig.model_dump()``; credentials live
outside ``AppConfig`` and therefore never land here.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

VALID_PIPELINE_STAGES = frozenset({"fetch"})
VALID_RUN_STATUSES = frozenset({"started", "success", "failed"})


class RunMetadata(BaseModel):
    """Pipeline execution audit record.

    Attributes:
        run_slug: UUID4 string uniquely identifying this run.
        pipeline_stage: Which stage produced this run record.
        status: Current execution status.
        country: Country code queried in this run.
        source: Provenance of the written snapshot (``"api"``/``"scrape"``).
        snapshot_path: Where the snapshot was written, once written.
        content_hash: SHA-256 of the written snapshot.
        config_snapshot: ``AppConfig.model_dump()`` at run start time.
        rows_processed: Number of entries written.
        error_message: Error description if ``status == "failed"``.
        started_at: UTC datetime when the run began.
        finished_at: UTC datetime when the run completed or failed.
    """

    model_config = ConfigDict(frozen=False)

    run_slug: str
    pipeline_stage: str
    status: str = "started"
    country: Optional[str] = None
    source: Optional[str] = None
    snapshot_path: Optional[str] = None
    content_hash: Optional[str] = None
    config_snapshot: dict[str, Any]
    rows_processed: int = 0
    error_message: Optional[str] = None
    started_at: datetime
    finished_at: Optional[datetime] = None

    @field_validator("pipeline_stage")
    @classmethod
    def validate_pipeline_stage(cls, v: str) -> str:
        if v not in VALID_PIPELINE_STAGES:
            raise ValueError(
                f"Unknown pipeline_stage '{v}'. Must be one of {sorted(VALID_PIPELINE_STAGES)}."
            )
        return v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in VALID_RUN_STATUSES:
            raise ValueError(
                f"Unknown status '{v}'. Must be one of {sorted(VALID_RUN_STATUSES)}."
            )
        return v
