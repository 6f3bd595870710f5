"""Deterministic credit estimation for series and movie productions."""

import math
from typing import Dict, List, Union

from .models import (
    CreditBreakdown,
    CreditEstimate,
    MovieConfig,
    SeriesConfig,
    UnitKind,
)
from .planner import episode_duration_seconds, resolve_acts

VIDEO_CREDITS_PER_SHOT = 10
SECONDS_PER_SHOT = 5
MUSIC_CREDITS = 5
VOICEOVER_CHARS_PER_MINUTE = 500
MIN_VOICEOVER_CREDITS = 2
ASSEMBLY_CREDITS_PER_MINUTE = 50
MIN_ASSEMBLY_MINUTES = 0.5

# Episodes and acts are priced identically; only duration differs
UNIT_KIND_MULTIPLIER: Dict[UnitKind, int] = {
    UnitKind.EPISODE: 1,
    UnitKind.ACT: 1,
}


def unit_breakdown(duration_seconds: float, kind: UnitKind) -> CreditBreakdown:
    """Cost of one unit of the given duration, split by production step."""
    multiplier = UNIT_KIND_MULTIPLIER[kind]
    minutes = duration_seconds / 60

    video = math.ceil(duration_seconds / SECONDS_PER_SHOT) * VIDEO_CREDITS_PER_SHOT
    voiceover_chars = minutes * VOICEOVER_CHARS_PER_MINUTE
    voiceover = max(MIN_VOICEOVER_CREDITS, math.ceil(voiceover_chars / 1000) * 2)
    assembly = math.ceil(max(MIN_ASSEMBLY_MINUTES, minutes) * ASSEMBLY_CREDITS_PER_MINUTE)

    return CreditBreakdown(
        video=video * multiplier,
        music=MUSIC_CREDITS * multiplier,
        voiceover=voiceover * multiplier,
        assembly=assembly * multiplier,
    )


def unit_credits(duration_seconds: float, kind: UnitKind) -> int:
    """Total cost of one unit."""
    b = unit_breakdown(duration_seconds, kind)
    return b.video + b.music + b.voiceover + b.assembly


def _estimate(durations: List[float], kind: UnitKind) -> CreditEstimate:
    breakdowns = [unit_breakdown(d, kind) for d in durations]
    per_unit = [b.video + b.music + b.voiceover + b.assembly for b in breakdowns]
    return CreditEstimate(
        per_unit=per_unit,
        total=sum(per_unit),
        breakdown=CreditBreakdown(
            video=sum(b.video for b in breakdowns),
            music=sum(b.music for b in breakdowns),
            voiceover=sum(b.voiceover for b in breakdowns),
            assembly=sum(b.assembly for b in breakdowns),
        ),
    )


def estimate_series_credits(config: SeriesConfig) -> CreditEstimate:
    """Estimate a validated series config."""
    duration = episode_duration_seconds(config)
    return _estimate([duration] * len(config.episodes), UnitKind.EPISODE)


def estimate_movie_credits(config: MovieConfig) -> CreditEstimate:
    """Estimate a validated movie config."""
    durations = [a.duration_minutes * 60 for a in resolve_acts(config)]
    return _estimate(durations, UnitKind.ACT)


def estimate(config: Union[SeriesConfig, MovieConfig]) -> CreditEstimate:
    """Estimate any validated production config.

    Pure: the same config always yields the same estimate, and nothing is
    generated or billed.
    """
    if isinstance(config, SeriesConfig):
        return estimate_series_credits(config)
    return estimate_movie_credits(config)
