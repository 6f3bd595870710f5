"""Pydantic models for the production pipeline and its API."""

from typing import Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator
from enum import Enum


class ProductionKind(str, Enum):
    """Kind of batch production."""

    SERIES = "series"
    MOVIE = "movie"


class UnitKind(str, Enum):
    """Kind of production unit."""

    EPISODE = "episode"
    ACT = "act"


class UnitStatus(str, Enum):
    """Terminal status of a production unit."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ProductionSettings(BaseModel):
    """Style settings passed through to the generation backend."""

    model_config = ConfigDict(extra="allow")

    visual_style: Optional[str] = None
    aspect_ratio: str = "16:9"
    quality: str = "standard"


class CharacterProfile(BaseModel):
    """Recurring character, rendered into every unit prompt."""

    name: str
    description: str = ""
    role: str = "supporting"


class EpisodeSpec(BaseModel):
    """One episode of a series."""

    episode_number: Optional[int] = None
    title: Optional[str] = None
    synopsis: Optional[str] = None
    plot_points: List[str] = Field(default_factory=list)


class SeriesConfig(BaseModel):
    """Configuration of a TV-style series."""

    title: Optional[str] = None
    synopsis: Optional[str] = None
    genre: str = "drama"
    season_number: int = 1
    setting: Optional[str] = None
    overarching_plot: Optional[str] = None
    main_characters: List[CharacterProfile] = Field(default_factory=list)
    episodes: Optional[List[EpisodeSpec]] = None
    episode_duration_cap_seconds: Optional[float] = None


class ActSpec(BaseModel):
    """One act of a movie."""

    act_number: Optional[int] = None
    title: Optional[str] = None
    synopsis: Optional[str] = None
    duration_minutes: Optional[float] = None
    plot_points: List[str] = Field(default_factory=list)


class MovieConfig(BaseModel):
    """Configuration of a movie broken into acts."""

    title: Optional[str] = None
    synopsis: Optional[str] = None
    genre: str = "drama"
    setting: Optional[str] = None
    main_characters: List[CharacterProfile] = Field(default_factory=list)
    acts: Optional[List[ActSpec]] = None
    target_duration_minutes: float = 5


class ProductionRequest(BaseModel):
    """A production request, consumed exactly once by the controller."""

    model_config = ConfigDict(frozen=True)

    project_id: str
    user_id: str
    kind: ProductionKind
    config: Union[SeriesConfig, MovieConfig]
    settings: ProductionSettings = Field(default_factory=ProductionSettings)
    estimate_only: bool = False

    @model_validator(mode="before")
    @classmethod
    def _config_for_kind(cls, data):
        # The config model follows the kind
        if isinstance(data, dict) and isinstance(data.get("config"), dict):
            kind = ProductionKind(data.get("kind"))
            model = SeriesConfig if kind == ProductionKind.SERIES else MovieConfig
            data = {**data, "config": model.model_validate(data["config"])}
        return data


class UnitSpec(BaseModel):
    """A single schedulable unit of a batch."""

    unit_index: int
    kind: UnitKind
    segment_id: str
    title: str
    prompt: str
    duration_seconds: float
    estimated_credits: int


class CreditBreakdown(BaseModel):
    """Credit cost split by production step."""

    video: int = 0
    music: int = 0
    voiceover: int = 0
    assembly: int = 0


class CreditEstimate(BaseModel):
    """Deterministic cost of a production."""

    per_unit: List[int]
    total: int
    breakdown: CreditBreakdown


class GeneratedArtifact(BaseModel):
    """A finished artifact returned by the generation backend."""

    url: str
    duration_seconds: float
    credits: Optional[int] = None
    raw: Dict = Field(default_factory=dict)


class ProductionUnitResult(BaseModel):
    """Outcome of one unit. Never mutated after the unit resolves."""

    unit_index: int
    segment_id: str
    title: str
    status: UnitStatus
    artifact_url: Optional[str] = None
    duration_seconds: Optional[float] = None
    credits_charged: int = 0
    error_message: Optional[str] = None
    attempts: int = 0


class ProgressSnapshot(BaseModel):
    """Progress of a batch run."""

    total_units: int
    completed_units: int = 0
    failed_units: int = 0
    pending_units: int = 0
    processing_units: List[str] = Field(default_factory=list)
    current_segment: Optional[str] = None
    overall_progress: int = 0
    unit_results: List[ProductionUnitResult] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class VideoSummary(BaseModel):
    """A produced video, as exposed to callers."""

    segment_id: str
    title: str
    video_url: str
    duration_seconds: float


class BatchProductionResult(BaseModel):
    """Terminal result of a batch production."""

    success: bool
    production_id: str
    kind: ProductionKind
    title: str
    videos: List[VideoSummary] = Field(default_factory=list)
    total_duration_seconds: float = 0
    total_credits_used: int = 0
    credits_remaining: Optional[int] = None
    progress: ProgressSnapshot
    error: Optional[str] = None


class EstimateResult(BaseModel):
    """Response for estimate-only requests."""

    success: bool = True
    kind: ProductionKind
    estimated_credits: int
    per_unit: List[int]
    breakdown: CreditBreakdown


class DeductionResult(BaseModel):
    """A settled credit deduction."""

    user_id: str
    amount: int
    reference_id: str
    credits_remaining: int


class DeductionDeferred(BaseModel):
    """A deduction queued because the credit store was unavailable."""

    user_id: str
    amount: int
    description: str
    project_id: str
    category: str
    reference_id: str
    reason: str


class ProduceBatchRequest(BaseModel):
    """Request body for POST /produce-batch."""

    project_id: str
    type: ProductionKind
    series_config: Optional[SeriesConfig] = None
    movie_config: Optional[MovieConfig] = None
    settings: Optional[ProductionSettings] = None
    estimate_only: bool = False


class CreditBalanceResponse(BaseModel):
    """Credit balance of a user."""

    user_id: str
    credits_remaining: int


class ReconcileResponse(BaseModel):
    """Outcome of replaying deferred deductions."""

    settled: List[DeductionResult]
    pending: int
