"""Normalization and bounds checks for series and movie configs."""

from typing import List, Optional

from .errors import ValidationError
from .models import ActSpec, EpisodeSpec, MovieConfig, SeriesConfig

MAX_EPISODES = 12
MAX_ACTS = 5
MAX_EPISODE_DURATION = 180  # seconds
MAX_MOVIE_DURATION = 30  # minutes


def _clean(value: Optional[str]) -> str:
    return value.strip() if isinstance(value, str) else ""


def _require_text(value: Optional[str], field: str) -> str:
    text = _clean(value)
    if not text:
        raise ValidationError(field, "is required")
    return text


def validate_series_config(config: SeriesConfig) -> SeriesConfig:
    """Validate a series config and return a trimmed copy.

    Raises:
        ValidationError: on the first violation found.
    """
    title = _require_text(config.title, "title")
    synopsis = _require_text(config.synopsis, "synopsis")

    if not config.episodes:
        raise ValidationError("episodes", "is required and must not be empty")
    if len(config.episodes) > MAX_EPISODES:
        raise ValidationError(
            "episodes", f"Maximum {MAX_EPISODES} episodes allowed per batch"
        )

    cap = config.episode_duration_cap_seconds
    if cap is not None:
        if cap <= 0:
            raise ValidationError(
                "episode_duration_cap_seconds", "must be positive"
            )
        if cap > MAX_EPISODE_DURATION:
            raise ValidationError(
                "episode_duration_cap_seconds",
                f"Maximum episode duration is {MAX_EPISODE_DURATION} seconds",
            )

    episodes: List[EpisodeSpec] = []
    for i, episode in enumerate(config.episodes):
        number = episode.episode_number
        ep_title = _clean(episode.title)
        ep_synopsis = _clean(episode.synopsis)
        if not number or number < 1 or not ep_title or not ep_synopsis:
            raise ValidationError(
                f"episodes[{i}]",
                f"Episode {i + 1} is missing required fields "
                "(episode_number, title, synopsis)",
            )
        episodes.append(
            episode.model_copy(update={"title": ep_title, "synopsis": ep_synopsis})
        )

    return config.model_copy(
        update={"title": title, "synopsis": synopsis, "episodes": episodes}
    )


def validate_movie_config(config: MovieConfig) -> MovieConfig:
    """Validate a movie config and return a trimmed copy.

    A missing or empty act list is allowed: the planner falls back to the
    default three-act structure.

    Raises:
        ValidationError: on the first violation found.
    """
    title = _require_text(config.title, "title")
    synopsis = _require_text(config.synopsis, "synopsis")

    acts = config.acts or []
    if len(acts) > MAX_ACTS:
        raise ValidationError("acts", f"Maximum {MAX_ACTS} acts allowed")

    target = config.target_duration_minutes
    if target <= 0:
        raise ValidationError("target_duration_minutes", "must be positive")
    if target > MAX_MOVIE_DURATION:
        raise ValidationError(
            "target_duration_minutes",
            f"Maximum movie duration is {MAX_MOVIE_DURATION} minutes",
        )

    explicit = 0.0
    for i, act in enumerate(acts):
        if act.duration_minutes is not None:
            if act.duration_minutes <= 0:
                raise ValidationError(
                    f"acts[{i}].duration_minutes", "must be positive"
                )
            explicit += act.duration_minutes
    if explicit > MAX_MOVIE_DURATION:
        raise ValidationError(
            "acts",
            f"Maximum movie duration is {MAX_MOVIE_DURATION} minutes",
        )
    if any(a.duration_minutes is None for a in acts) and explicit >= target:
        raise ValidationError(
            "acts",
            "explicit act durations leave no time for the remaining acts",
        )

    cleaned: List[ActSpec] = []
    for i, act in enumerate(acts):
        number = act.act_number
        act_title = _clean(act.title)
        act_synopsis = _clean(act.synopsis)
        if not number or number < 1 or not act_title or not act_synopsis:
            raise ValidationError(
                f"acts[{i}]",
                f"Act {i + 1} is missing required fields "
                "(act_number, title, synopsis)",
            )
        cleaned.append(
            act.model_copy(update={"title": act_title, "synopsis": act_synopsis})
        )

    return config.model_copy(
        update={"title": title, "synopsis": synopsis, "acts": cleaned}
    )
