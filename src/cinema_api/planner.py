"""Expand validated series/movie configs into schedulable units."""

from typing import List

from .models import (
    ActSpec,
    CharacterProfile,
    CreditEstimate,
    EpisodeSpec,
    MovieConfig,
    SeriesConfig,
    UnitKind,
    UnitSpec,
)

DEFAULT_EPISODE_DURATION = 60  # seconds

# Share of the movie target given to each default act
DEFAULT_ACT_SHARES = (0.25, 0.5, 0.25)


def episode_duration_seconds(config: SeriesConfig) -> float:
    """Duration of every episode of a series."""
    return config.episode_duration_cap_seconds or DEFAULT_EPISODE_DURATION


def default_acts(config: MovieConfig) -> List[ActSpec]:
    """Three-act structure used when a movie config has no acts."""
    target = config.target_duration_minutes
    setup, confrontation, resolution = (target * s for s in DEFAULT_ACT_SHARES)
    return [
        ActSpec(
            act_number=1,
            title="Setup",
            synopsis=(
                f'Opening of "{config.title}". {config.synopsis} '
                "Establish the world and introduce the main characters."
            ),
            duration_minutes=setup,
        ),
        ActSpec(
            act_number=2,
            title="Confrontation",
            synopsis=(
                f'Middle section of "{config.title}". Rising action, '
                "challenges, and character development."
            ),
            duration_minutes=confrontation,
        ),
        ActSpec(
            act_number=3,
            title="Resolution",
            synopsis=(
                f'Climax and ending of "{config.title}". '
                "Final confrontation and resolution."
            ),
            duration_minutes=resolution,
        ),
    ]


def quick_series_config(
    title: str,
    synopsis: str,
    episode_count: int = 6,
    episode_duration: float = DEFAULT_EPISODE_DURATION,
    genre: str = "drama",
) -> SeriesConfig:
    """Build a series from a title and synopsis: pilot, chapters, finale."""
    episodes = []
    for i in range(1, episode_count + 1):
        if i == 1:
            episode_synopsis = f"Pilot: {synopsis}"
        elif i == episode_count:
            episode_synopsis = f"Finale: Conclusion of {title}"
        else:
            episode_synopsis = f"Chapter {i} of {title}"
        episodes.append(
            EpisodeSpec(episode_number=i, title=f"Episode {i}", synopsis=episode_synopsis)
        )
    return SeriesConfig(
        title=title,
        synopsis=synopsis,
        genre=genre,
        episodes=episodes,
        episode_duration_cap_seconds=episode_duration,
    )


def quick_movie_config(
    title: str,
    synopsis: str,
    target_duration_minutes: float = 5,
    genre: str = "drama",
) -> MovieConfig:
    """Build a movie that will be produced with the default three acts."""
    return MovieConfig(
        title=title,
        synopsis=synopsis,
        genre=genre,
        target_duration_minutes=target_duration_minutes,
        acts=[],
    )


def resolve_acts(config: MovieConfig) -> List[ActSpec]:
    """Return the acts of a movie with every duration filled in.

    Acts without an explicit duration share what is left of the target
    evenly.
    """
    if not config.acts:
        return default_acts(config)

    explicit = sum(a.duration_minutes for a in config.acts if a.duration_minutes)
    missing = [a for a in config.acts if a.duration_minutes is None]
    share = 0.0
    if missing:
        share = max(config.target_duration_minutes - explicit, 0) / len(missing)

    return [
        a if a.duration_minutes is not None
        else a.model_copy(update={"duration_minutes": share})
        for a in config.acts
    ]


def _character_context(characters: List[CharacterProfile]) -> str:
    return ". ".join(f"{c.name} ({c.role}): {c.description}" for c in characters)


def build_episode_prompt(
    episode: EpisodeSpec,
    series: SeriesConfig,
    is_first: bool,
    is_last: bool,
) -> str:
    """Build the generation prompt for one episode with series continuity."""
    parts = [f'{series.genre} TV series: "{series.title}"']
    if series.setting:
        parts.append(f"Setting: {series.setting}")

    parts.append(f'Episode {episode.episode_number}: "{episode.title}"')
    parts.append(episode.synopsis)

    characters = _character_context(series.main_characters)
    if characters:
        parts.append(f"Characters: {characters}")
    if episode.plot_points:
        parts.append(f"Key moments: {', '.join(episode.plot_points)}")

    if is_first:
        parts.append("This is the series premiere - establish the world and characters")
    elif is_last:
        parts.append("This is the season finale - resolve major plot threads")

    if series.overarching_plot:
        parts.append(f"Series arc: {series.overarching_plot}")

    return ". ".join(parts)


def build_act_prompt(
    act: ActSpec,
    movie: MovieConfig,
    is_first: bool,
    is_last: bool,
) -> str:
    """Build the generation prompt for one act with movie continuity."""
    parts = [f'{movie.genre} film: "{movie.title}"']
    if movie.setting:
        parts.append(f"Setting: {movie.setting}")

    parts.append(f'Act {act.act_number}: "{act.title}"')
    parts.append(act.synopsis)

    characters = _character_context(movie.main_characters)
    if characters:
        parts.append(f"Characters: {characters}")
    if act.plot_points:
        parts.append(f"Key moments: {', '.join(act.plot_points)}")

    if is_first:
        parts.append(
            "Act 1 - Setup: Establish the world, introduce characters, "
            "present the inciting incident"
        )
    elif is_last:
        parts.append(
            "Act 3 - Resolution: Climax and resolution, character arcs complete"
        )
    else:
        parts.append(
            "Act 2 - Confrontation: Rising action, obstacles, character development"
        )

    return ". ".join(parts)


def plan_series_units(config: SeriesConfig, estimate: CreditEstimate) -> List[UnitSpec]:
    """Expand a validated series into one unit per episode."""
    duration = episode_duration_seconds(config)
    last = len(config.episodes) - 1
    units = []
    for i, episode in enumerate(config.episodes):
        units.append(
            UnitSpec(
                unit_index=i,
                kind=UnitKind.EPISODE,
                segment_id=f"episode-{episode.episode_number}",
                title=f"S{config.season_number}E{episode.episode_number}: {episode.title}",
                prompt=build_episode_prompt(episode, config, i == 0, i == last),
                duration_seconds=duration,
                estimated_credits=estimate.per_unit[i],
            )
        )
    return units


def plan_movie_units(config: MovieConfig, estimate: CreditEstimate) -> List[UnitSpec]:
    """Expand a validated movie into one unit per act."""
    acts = resolve_acts(config)
    last = len(acts) - 1
    units = []
    for i, act in enumerate(acts):
        units.append(
            UnitSpec(
                unit_index=i,
                kind=UnitKind.ACT,
                segment_id=f"act-{act.act_number}",
                title=f"Act {act.act_number}: {act.title}",
                prompt=build_act_prompt(act, config, i == 0, i == last),
                duration_seconds=act.duration_minutes * 60,
                estimated_credits=estimate.per_unit[i],
            )
        )
    return units
