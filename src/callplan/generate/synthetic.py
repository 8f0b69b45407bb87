# callplan/generate/synthetic.py
from __future__ import annotations

import json
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Tuple

import numpy as np

from callplan.forecasting.models import HistoricalSample
from callplan.scheduling.models import AgentAvailability, AgentSkill, DemandForecast

DEFAULT_AGENTS_JSON = Path(__file__).resolve().parents[2] / "example_agents.json"


# ----------------------------
# Configuration container
# ----------------------------
@dataclass(slots=True)
class SyntheticConfig:
    """
    Configuration for generation of synthetic call history and agents.
    """

    queues: Tuple[str, ...] = ("sales", "support")

    # Operating day, in whole hours, and slot size
    start_hour: int = 8
    end_hour: int = 18
    slot_granularity_minutes: int = 30

    # Weeks of history generated before the target day
    weeks: int = 4

    # Call volume: base * (1 + amplitude * sin((hour - start) * pi / 9)), with noise
    base_calls: float = 40.0
    peak_amplitude: float = 0.5
    noise_pct: float = 0.10
    aht_range: Tuple[float, float] = (240.0, 360.0)

    # Agents 1..n_agents; every `expert_every`-th agent is an expert
    n_agents: int = 12
    expert_every: int = 3
    shift_start_hour: int = 8
    shift_end_hour: int = 17

    # RNG seed
    seed: Optional[int] = 7

    def validate(self) -> None:
        if not self.queues:
            raise ValueError("queues must not be empty.")
        if not (0 <= self.start_hour < self.end_hour <= 24):
            raise ValueError("start_hour/end_hour must satisfy 0 <= start < end <= 24.")
        if not (0 <= self.shift_start_hour < self.shift_end_hour <= 24):
            raise ValueError("shift hours must satisfy 0 <= start < end <= 24.")
        if self.slot_granularity_minutes <= 0:
            raise ValueError("slot_granularity_minutes must be > 0.")
        if self.weeks <= 0:
            raise ValueError("weeks must be > 0.")
        if self.base_calls < 0:
            raise ValueError("base_calls must be non-negative.")
        if not (0.0 <= self.peak_amplitude <= 1.0):
            raise ValueError("peak_amplitude must be in [0,1].")
        if not (0.0 <= self.noise_pct < 1.0):
            raise ValueError("noise_pct must be in [0,1).")
        lo, hi = self.aht_range
        if not (0 < lo <= hi):
            raise ValueError("aht_range must satisfy 0 < low <= high.")
        if self.n_agents < 0:
            raise ValueError("n_agents must be non-negative.")
        if self.expert_every <= 0:
            raise ValueError("expert_every must be > 0.")


# ----------------------------
# Generation helpers
# ----------------------------
def _rng(seed: Optional[int]) -> np.random.Generator:
    return np.random.default_rng(seed) if seed is not None else np.random.default_rng()


def _day_slots(day: date, start_hour: int, end_hour: int, minutes: int) -> list[datetime]:
    current = datetime.combine(day, time()) + timedelta(hours=start_hour)
    end = datetime.combine(day, time()) + timedelta(hours=end_hour)
    step = timedelta(minutes=minutes)
    out = []
    while current < end:
        out.append(current)
        current += step
    return out


def daily_profile(hour: float, start_hour: int, amplitude: float) -> float:
    """Mid-day peak: 1 + amplitude * sin((hour - start) * pi / 9)."""
    return 1.0 + amplitude * math.sin((hour - start_hour) * math.pi / 9)


# ----------------------------
# Core API
# ----------------------------
def generate_history(cfg: SyntheticConfig, target_day: date) -> list[HistoricalSample]:
    """Matching-weekday history for the `cfg.weeks` weeks before `target_day`."""
    cfg.validate()
    g = _rng(cfg.seed)
    lo, hi = cfg.aht_range

    samples: list[HistoricalSample] = []
    for queue in cfg.queues:
        for week in range(1, cfg.weeks + 1):
            day = target_day - timedelta(weeks=week)
            for slot in _day_slots(
                day, cfg.start_hour, cfg.end_hour, cfg.slot_granularity_minutes
            ):
                hour = slot.hour + slot.minute / 60
                mean = cfg.base_calls * daily_profile(
                    hour, cfg.start_hour, cfg.peak_amplitude
                )
                noise = g.uniform(-cfg.noise_pct, cfg.noise_pct)
                samples.append(
                    HistoricalSample(
                        queue_name=queue,
                        timestamp=slot,
                        call_count=max(0, int(round(mean * (1 + noise)))),
                        average_handle_time_seconds=round(float(g.uniform(lo, hi)), 2),
                    )
                )
    return samples


def generate_agents(
    cfg: SyntheticConfig, day: date
) -> tuple[list[AgentAvailability], list[AgentSkill]]:
    """
    Agents 1..n available for the configured shift on `day`, skilled on every
    queue. Every `expert_every`-th agent is an expert (level 3, efficiency 1.3),
    the rest are proficient (level 2, efficiency 1.0). The first queue is each
    agent's primary queue.
    """
    cfg.validate()
    shift_start = datetime.combine(day, time()) + timedelta(hours=cfg.shift_start_hour)
    shift_end = datetime.combine(day, time()) + timedelta(hours=cfg.shift_end_hour)

    availabilities: list[AgentAvailability] = []
    skills: list[AgentSkill] = []
    for agent_id in range(1, cfg.n_agents + 1):
        availabilities.append(AgentAvailability(agent_id, shift_start, shift_end, True))
        expert = agent_id % cfg.expert_every == 0
        for i, queue in enumerate(cfg.queues):
            skills.append(
                AgentSkill(
                    agent_id=agent_id,
                    queue_name=queue,
                    efficiency_coefficient=1.3 if expert else 1.0,
                    skill_level=3 if expert else 2,
                    is_primary=i == 0,
                )
            )
    return availabilities, skills


def generate_demand(
    cfg: SyntheticConfig, day: date, avg_fte: float
) -> list[DemandForecast]:
    """Demand curve around `avg_fte` with the same mid-day peak as the history."""
    cfg.validate()
    step = timedelta(minutes=cfg.slot_granularity_minutes)
    demand: list[DemandForecast] = []
    for queue in cfg.queues:
        for slot in _day_slots(
            day, cfg.start_hour, cfg.end_hour, cfg.slot_granularity_minutes
        ):
            fte = avg_fte * daily_profile(slot.hour, cfg.start_hour, cfg.peak_amplitude)
            demand.append(
                DemandForecast(
                    queue_name=queue,
                    slot_start=slot,
                    slot_end=slot + step,
                    forecasted_calls=int(round(fte * 10)),
                    required_fte=fte,
                    confidence_lower=fte * 0.85,
                    confidence_upper=fte * 1.15,
                )
            )
    return demand


def _parse_dt(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def agents_from_json(
    path: str | Path | None = None,
) -> tuple[list[AgentAvailability], list[AgentSkill]]:
    """
    Load agent availability and skills from a JSON file on disk.

    If `path` is omitted, the loader reads from `src/example_agents.json`. The
    file holds a list of agents (or an object with a top-level `agents` array);
    each agent has an `id`, an `availability` list of `{start, end, available}`
    and a `skills` list of `{queue, efficiency, level, primary}`.
    """
    file_path = Path(path) if path is not None else DEFAULT_AGENTS_JSON
    file_path = file_path.expanduser()

    if file_path.suffix.lower() != ".json":
        raise ValueError("agents_from_json expects a path to a .json file.")
    if not file_path.exists():
        raise FileNotFoundError(f"Agents JSON file not found: {file_path}")

    try:
        data = json.loads(file_path.read_text())
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {file_path}") from exc

    if isinstance(data, Mapping):
        entries = data.get("agents")
        if entries is None:
            raise ValueError("JSON file must contain a list or an 'agents' key.")
    elif isinstance(data, Sequence) and not isinstance(data, str):
        entries = data
    else:
        raise TypeError("JSON file must contain a list of agent objects.")

    availabilities: list[AgentAvailability] = []
    skills: list[AgentSkill] = []
    for idx, entry in enumerate(entries):
        if not isinstance(entry, Mapping) or "id" not in entry:
            raise ValueError(f"Agent entry {idx} must be an object with an 'id'.")
        agent_id = int(entry["id"])
        for window in entry.get("availability", []):
            availabilities.append(
                AgentAvailability(
                    agent_id=agent_id,
                    start=_parse_dt(window["start"]),
                    end=_parse_dt(window["end"]),
                    is_available=bool(window.get("available", True)),
                )
            )
        for skill in entry.get("skills", []):
            skills.append(
                AgentSkill(
                    agent_id=agent_id,
                    queue_name=str(skill["queue"]),
                    efficiency_coefficient=float(skill.get("efficiency", 1.0)),
                    skill_level=int(skill.get("level", 2)),
                    is_primary=bool(skill.get("primary", False)),
                )
            )
    return availabilities, skills
