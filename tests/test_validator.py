"""Tests for config validation."""

import pytest

from cinema_api.errors import ValidationError
from cinema_api.models import ActSpec, EpisodeSpec, MovieConfig
from cinema_api.validator import (
    MAX_EPISODES,
    validate_movie_config,
    validate_series_config,
)


def test_valid_series_is_trimmed(series_config):
    """Test that a valid series comes back with trimmed strings."""
    config = series_config(title="  The Lighthouse  ", synopsis=" Storms. ")
    validated = validate_series_config(config)
    assert validated.title == "The Lighthouse"
    assert validated.synopsis == "Storms."
    assert len(validated.episodes) == 5
    # Input is untouched
    assert config.title == "  The Lighthouse  "


@pytest.mark.parametrize("title", [None, "", "   "])
def test_series_missing_title(series_config, title):
    """Test that a blank title is rejected first."""
    with pytest.raises(ValidationError) as exc:
        validate_series_config(series_config(title=title, synopsis=None))
    assert exc.value.field == "title"


def test_series_missing_synopsis_before_episode_bounds(series_config):
    """Test that synopsis is checked before the episode count."""
    with pytest.raises(ValidationError) as exc:
        validate_series_config(series_config(count=MAX_EPISODES + 1, synopsis=" "))
    assert exc.value.field == "synopsis"


@pytest.mark.parametrize("episodes", [None, []])
def test_series_requires_episodes(series_config, episodes):
    """Test that a series without episodes is rejected."""
    with pytest.raises(ValidationError) as exc:
        validate_series_config(series_config(episodes=episodes))
    assert exc.value.field == "episodes"


def test_series_too_many_episodes(series_config):
    """Test the 12-episode bound."""
    validate_series_config(series_config(count=MAX_EPISODES))
    with pytest.raises(ValidationError) as exc:
        validate_series_config(series_config(count=MAX_EPISODES + 1))
    assert exc.value.field == "episodes"
    assert "Maximum 12 episodes" in exc.value.reason


def test_series_count_checked_before_duration(series_config):
    """Test that the count bound wins over the duration bound."""
    with pytest.raises(ValidationError) as exc:
        validate_series_config(series_config(count=13, duration=500))
    assert exc.value.field == "episodes"


@pytest.mark.parametrize("duration", [181, 0, -5])
def test_series_episode_duration_bound(series_config, duration):
    """Test the per-episode duration bound."""
    with pytest.raises(ValidationError) as exc:
        validate_series_config(series_config(duration=duration))
    assert exc.value.field == "episode_duration_cap_seconds"


def test_series_duration_checked_before_episode_fields(series_config):
    """Test that the duration bound wins over per-episode fields."""
    config = series_config(duration=200)
    config.episodes[0].title = ""
    with pytest.raises(ValidationError) as exc:
        validate_series_config(config)
    assert exc.value.field == "episode_duration_cap_seconds"


@pytest.mark.parametrize(
    "episode",
    [
        EpisodeSpec(episode_number=None, title="A", synopsis="B"),
        EpisodeSpec(episode_number=0, title="A", synopsis="B"),
        EpisodeSpec(episode_number=2, title=" ", synopsis="B"),
        EpisodeSpec(episode_number=2, title="A", synopsis=None),
    ],
)
def test_series_episode_required_fields(series_config, episode):
    """Test that every episode needs a number, a title and a synopsis."""
    config = series_config(count=3)
    config.episodes[1] = episode
    with pytest.raises(ValidationError) as exc:
        validate_series_config(config)
    assert exc.value.field == "episodes[1]"
    assert "Episode 2" in exc.value.reason


def test_series_without_duration_cap_is_valid(series_config):
    """Test that the duration cap is optional."""
    validated = validate_series_config(series_config(duration=None))
    assert validated.episode_duration_cap_seconds is None


def _movie(**overrides):
    fields = {
        "title": "Harbor Lights",
        "synopsis": "A town waits for a ship.",
        "target_duration_minutes": 10,
    }
    fields.update(overrides)
    return MovieConfig(**fields)


def _act(number, **overrides):
    fields = {"act_number": number, "title": f"Part {number}", "synopsis": "Things happen."}
    fields.update(overrides)
    return ActSpec(**fields)


def test_movie_without_acts_is_valid():
    """Test that acts are optional for a movie."""
    validated = validate_movie_config(_movie(acts=None))
    assert validated.acts == []


def test_movie_too_many_acts():
    """Test the 5-act bound."""
    with pytest.raises(ValidationError) as exc:
        validate_movie_config(_movie(acts=[_act(i) for i in range(1, 7)]))
    assert exc.value.field == "acts"


@pytest.mark.parametrize("target", [31, 0])
def test_movie_target_duration_bound(target):
    """Test the 30-minute movie bound."""
    with pytest.raises(ValidationError) as exc:
        validate_movie_config(_movie(target_duration_minutes=target))
    assert exc.value.field == "target_duration_minutes"


def test_movie_explicit_act_durations_bound():
    """Test that explicit act durations cannot add up past 30 minutes."""
    acts = [_act(1, duration_minutes=20), _act(2, duration_minutes=15)]
    with pytest.raises(ValidationError) as exc:
        validate_movie_config(_movie(acts=acts))
    assert exc.value.field == "acts"


def test_movie_explicit_durations_leave_no_room():
    """Test that acts without a duration still get some time."""
    acts = [_act(1, duration_minutes=10), _act(2)]
    with pytest.raises(ValidationError) as exc:
        validate_movie_config(_movie(acts=acts, target_duration_minutes=10))
    assert exc.value.field == "acts"


def test_movie_act_required_fields():
    """Test that every act needs a number, a title and a synopsis."""
    acts = [_act(1), _act(2, synopsis="  ")]
    with pytest.raises(ValidationError) as exc:
        validate_movie_config(_movie(acts=acts))
    assert exc.value.field == "acts[1]"


def test_movie_title_checked_first():
    """Test that the title wins over every other violation."""
    with pytest.raises(ValidationError) as exc:
        validate_movie_config(
            _movie(title="", synopsis="", target_duration_minutes=99)
        )
    assert exc.value.field == "title"
