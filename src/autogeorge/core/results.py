"""Run summaries returned by pipeline stages."""

from typing import List, Optional

from pydantic import BaseModel, Field


class StageResult(BaseModel):
    """Aggregate outcome of one stage invocation.

    Per-item failures land in `errors` as "<label>: <message>" strings;
    they never abort the batch.
    """

    processed: int = 0
    successful: int = 0
    failed: int = 0
    errors: List[str] = Field(default_factory=list)
    duration_ms: int = 0
    message: Optional[str] = None

    def record_success(self) -> None:
        self.processed += 1
        self.successful += 1

    def record_failure(self, label: str, error: object) -> None:
        self.processed += 1
        self.failed += 1
        self.errors.append(f"{label}: {error}")


class PollResult(BaseModel):
    """Outcome of a feed polling run."""

    total_sources: int = 0
    successful_polls: int = 0
    failed_polls: int = 0
    new_items_found: int = 0
    duplicates_skipped: int = 0
    errors: List[str] = Field(default_factory=list)
    duration_ms: int = 0


class GenerationResult(StageResult):
    """Outcome of an article generation run."""

    total_items: int = 0
    skipped: int = 0
    article_ids: List[str] = Field(default_factory=list)


class ImageStageResult(StageResult):
    """Outcome of a featured image run."""

    article_ids: List[str] = Field(default_factory=list)


class PublishResult(StageResult):
    """Outcome of a publishing run; `published` mirrors `successful`."""

    published: int = 0

    def record_success(self) -> None:
        super().record_success()
        self.published += 1
