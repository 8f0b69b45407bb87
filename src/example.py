"""
Module with example code for running the call-center planner.

There are three ways to run the code:

1. Run the code with default options. This will generate synthetic call
    history and agents, forecast demand and build a schedule.
2. Run a single-agent scenario defined via code, with demand supplied
    directly to the schedule generator.
3. Run the code with agents pre-defined in a JSON file. Typical production use.

Usage via cli:
    python3 -m src.example --option 1
    python3 -m src.example --option 3 --json
"""

from __future__ import annotations

import argparse
import json
import logging
from datetime import date, datetime, timedelta

from callplan import (
    AgentAvailability,
    AgentSkill,
    AvailabilityPolicy,
    DemandForecast,
    ForecastSettings,
    ScheduleConstraints,
    ScheduleInput,
    generate_schedule,
    plan_schedule,
)
from callplan.generate.synthetic import (
    SyntheticConfig,
    agents_from_json,
    generate_agents,
    generate_history,
)
from callplan.reporting import Reporter, schedule_to_dict

DAY = date(2025, 12, 1)
WINDOW_START = datetime(2025, 12, 1, 8, 0)
WINDOW_END = datetime(2025, 12, 1, 18, 0)

synthetic = SyntheticConfig(queues=("sales", "support"), n_agents=12, seed=7)
settings = ForecastSettings(slot_granularity_minutes=30, lookback_weeks=4)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run call-center planning examples.")
    parser.add_argument(
        "--option",
        type=int,
        default=1,
        choices=(1, 2, 3),
        help="Example scenario to run (default: 1).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the schedule as JSON instead of the text report.",
    )
    parser.add_argument(
        "--no-plots",
        action="store_true",
        help="Skip charts (the text report and PDF are still produced).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show INFO logging from the engine.",
    )
    return parser.parse_args()


def run_option(option: int, as_json: bool = False, enable_plots: bool = True) -> None:
    print(f"Running example code with option {option}")

    # Synthetic history and agents; forecast then schedule in one call.
    if option == 1:
        history = generate_history(synthetic, DAY)
        availabilities, skills = generate_agents(synthetic, DAY)
        res = plan_schedule(
            synthetic.queues,
            WINDOW_START,
            WINDOW_END,
            history,
            availabilities,
            skills,
            constraints={"max_hours_per_day": 8, "max_consecutive_hours": 6},
            settings=settings,
            max_workers=4,
        )
        constraints = ScheduleConstraints()

    # One agent, one queue, ~1 FTE every slot for ten hours.
    elif option == 2:
        constraints = ScheduleConstraints(max_hours_per_day=8.0)
        step = timedelta(minutes=30)
        demand = []
        slot = WINDOW_START
        while slot < WINDOW_END:
            demand.append(
                DemandForecast("sales", slot, slot + step, 10, 1.0, 0.85, 1.15)
            )
            slot += step
        res = generate_schedule(
            ScheduleInput(
                availabilities=[
                    AgentAvailability(1, WINDOW_START, WINDOW_END, True),
                ],
                skills=[AgentSkill(1, "sales", 1.0, 2, is_primary=True)],
                demand_forecasts=demand,
                window_start=WINDOW_START,
                window_end=WINDOW_END,
                constraints=constraints,
            )
        )

    # Agents from JSON; overlapping declarations resolved latest-first.
    elif option == 3:
        availabilities, skills = agents_from_json()
        history = generate_history(synthetic, DAY)
        constraints = ScheduleConstraints(
            availability_policy=AvailabilityPolicy.LATEST_DECLARED
        )
        res = plan_schedule(
            synthetic.queues,
            WINDOW_START,
            WINDOW_END,
            history,
            availabilities,
            skills,
            constraints=constraints,
            settings=settings,
        )
    else:
        raise SystemExit(f"Unknown option {option}")

    if as_json:
        schedule = getattr(res, "schedule", res)
        print(json.dumps(schedule_to_dict(schedule), indent=2))
        return

    Reporter(constraints, enable_plots=enable_plots).post_run(res)


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run_option(args.option, as_json=args.json, enable_plots=not args.no_plots)


if __name__ == "__main__":
    main()
