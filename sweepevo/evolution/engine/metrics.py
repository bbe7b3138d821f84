from __future__ import annotations

from pydantic import BaseModel, Field


class GenerationReport(BaseModel):
    """Statistics of one completed generation."""

    generation: int = Field(description="Generation counter after this generation")
    best_score: float = Field(description="Best score evaluated in this generation")
    mean_score: float = Field(description="Mean score over evaluated genomes")
    archive_top_score: float | None = Field(description="Archive top-1 score after merge")
    archive_size: int = 0
    victory_count: int = 0
    evaluated: int = 0
    dropped: int = Field(default=0, description="Genomes dropped for topology mismatch")
    added_to_archive: int = 0
    duration: float = Field(default=0.0, description="Wall time of the generation in seconds")

    model_config = {"frozen": True}


class EngineMetrics(BaseModel):
    """Counters accumulated over the life of a run."""

    total_generations: int = Field(default=0, description="Completed generations")
    genomes_evaluated: int = Field(default=0, description="Total genomes evaluated")
    victories: int = Field(default=0, description="Total winning evaluations")
    genomes_dropped: int = Field(default=0, description="Total topology mismatches")
    worker_failures: int = Field(default=0, description="Failed evaluation attempts")
    retries: int = Field(default=0, description="Generations retried after a worker failure")
    errors_encountered: int = Field(default=0, description="Hard generation failures")

    def record_generation(self, report: GenerationReport) -> None:
        self.total_generations += 1
        self.genomes_evaluated += report.evaluated
        self.victories += report.victory_count
        self.genomes_dropped += report.dropped

    def to_dict(self) -> dict[str, int]:
        return self.model_dump()
