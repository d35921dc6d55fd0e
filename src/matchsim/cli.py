"""Command line interface for the Monte Carlo match predictor."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import sys
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol, Sequence, TypeVar

from .acquisition import AcquisitionError
from .config import get_config
from .configuration import (
    ConfigurationError,
    SimulatorConfig,
    create_commentary_generator,
    create_engine,
    create_match_data_provider,
    load_simulator_config,
    validate_simulator_config,
)
from .logging import configure_logging
from .models import (
    InvalidTeamStatisticsError,
    MatchContext,
    SimulationResult,
    build_match_context,
)
from .pipeline import run_match_prediction


class CommandHandler(Protocol):
    async def __call__(self, config: SimulatorConfig, args: argparse.Namespace) -> None:
        """Execute a command against the loaded configuration."""


HandlerT = TypeVar("HandlerT", bound=CommandHandler)


@dataclasses.dataclass(slots=True)
class Subcommand:
    """Container describing a CLI sub-command."""

    name: str
    help: str
    configure: Callable[[argparse.ArgumentParser], None]
    handler: CommandHandler

    def add_to_parser(
        self,
        subparsers,
        parent: argparse.ArgumentParser,
    ) -> argparse.ArgumentParser:
        """Create the parser for this subcommand."""

        parser = subparsers.add_parser(self.name, parents=[parent], help=self.help)
        self.configure(parser)
        parser.set_defaults(handler=self.handler, command=self.name)
        return parser


class SubcommandApp:
    """Registry that wires handlers into an :class:`argparse` parser."""

    def __init__(self, description: str | None = None) -> None:
        self._commands: list[Subcommand] = []
        self._description = description

    def command(
        self,
        name: str,
        *,
        help: str,
        configure: Callable[[argparse.ArgumentParser], None],
    ) -> Callable[[HandlerT], HandlerT]:
        """Register ``handler`` as a sub-command with configuration callback."""

        def _decorator(handler: HandlerT) -> HandlerT:
            self._commands.append(
                Subcommand(name=name, help=help, configure=configure, handler=handler)
            )
            return handler

        return _decorator

    @property
    def commands(self) -> Sequence[Subcommand]:
        return tuple(self._commands)

    def build_parser(self) -> argparse.ArgumentParser:
        parent = argparse.ArgumentParser(add_help=False)
        parent.add_argument("--config", dest="config_file")
        parent.add_argument("--environment", dest="config_environment")
        parent.add_argument("--log-level", dest="log_level")

        parser = argparse.ArgumentParser(description=self._description)
        subparsers = parser.add_subparsers(dest="command", required=True)
        for command in self._commands:
            command.add_to_parser(subparsers, parent)
        return parser


APP = SubcommandApp(description=__doc__)


def _read_payload(source: str) -> Mapping[str, Any]:
    if source == "-":
        text = sys.stdin.read()
    else:
        text = Path(source).read_text(encoding="utf-8")
    payload = json.loads(text)
    if not isinstance(payload, Mapping):
        raise InvalidTeamStatisticsError("Match payload must be a JSON object")
    return payload


def _engine_for(config: SimulatorConfig, args: argparse.Namespace):
    trials = getattr(args, "trials", None)
    seed = getattr(args, "seed", None)
    engine_cfg = config.engine.model_copy(
        update={
            key: value
            for key, value in (("trial_count", trials), ("seed", seed))
            if value is not None
        }
    )
    return create_engine(config.model_copy(update={"engine": engine_cfg}))


def _progress(message: str) -> None:
    if get_config().verbose:
        print(message, file=sys.stderr)


def _render_result(context: MatchContext, result: SimulationResult) -> None:
    home = context.team_a.name
    away = context.team_b.name
    print(f"{home} vs {away} (n={result.total_simulations:,})")
    print(f"  expected goals   {result.lambda_home:>6.2f} - {result.lambda_away:.2f}")
    header = f"{'Home':>8} {'Draw':>8} {'Away':>8} {'Over 2.5':>9} {'Variance':>9}"
    print(header)
    print("-" * len(header))
    print(
        f"{result.home_win_prob:>7.1f}% {result.draw_prob:>7.1f}%"
        f" {result.away_win_prob:>7.1f}% {result.over25_prob:>8.1f}%"
        f" {result.variance:>9.3f}"
    )
    print(f"\nMost likely score: {result.most_likely_score}")
    print(f"{'Score':<8} {'Count':>7} {'Prob':>7}")
    for entry in result.score_distribution:
        print(f"{entry.score:<8} {entry.count:>7d} {entry.prob:>6.2f}%")


def _configure_simulate(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("payload", help="Match payload JSON file, or '-' for stdin")
    parser.add_argument("--trials", type=int)
    parser.add_argument("--seed", type=int)
    parser.add_argument("--json", action="store_true", help="Emit the result as JSON")
    parser.add_argument("--csv", dest="csv_path", help="Write the score table to CSV")


@APP.command("simulate", help="Simulate a match from a JSON payload", configure=_configure_simulate)
async def _cmd_simulate(config: SimulatorConfig, args: argparse.Namespace) -> None:
    context = build_match_context(_read_payload(args.payload))
    engine = _engine_for(config, args)
    _progress(
        f"Simulating {context.team_a.name} vs {context.team_b.name}"
        f" over {engine.config.trial_count:,} trials..."
    )
    result = engine.simulate(context)
    if args.csv_path:
        result.distribution_frame().write_csv(args.csv_path)
    if args.json:
        print(json.dumps(result.as_dict(), indent=2))
        return
    _render_result(context, result)


def _configure_summary(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("payload", help="Match payload JSON file, or '-' for stdin")
    parser.add_argument("--trials", type=int)
    parser.add_argument("--seed", type=int)


@APP.command(
    "summary",
    help="Print the commentary summary for a simulated match",
    configure=_configure_summary,
)
async def _cmd_summary(config: SimulatorConfig, args: argparse.Namespace) -> None:
    context = build_match_context(_read_payload(args.payload))
    result = _engine_for(config, args).simulate(context)
    print(json.dumps(result.commentary_summary()))


def _configure_predict(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("team_a", help="Home team name")
    parser.add_argument("team_b", help="Away team name")
    parser.add_argument("--trials", type=int)
    parser.add_argument("--seed", type=int)
    parser.add_argument("--no-commentary", action="store_true")


@APP.command(
    "predict",
    help="Fetch live statistics, simulate and comment on a fixture",
    configure=_configure_predict,
)
async def _cmd_predict(config: SimulatorConfig, args: argparse.Namespace) -> None:
    api_key = get_config().api_key
    if not api_key:
        raise ConfigurationError("MATCHSIM_API_KEY must be set for live predictions")
    provider = create_match_data_provider(config, api_key)
    commentator = None if args.no_commentary else create_commentary_generator(config, api_key)
    _progress(f"Fetching statistics for {args.team_a} vs {args.team_b}...")
    try:
        prediction = await run_match_prediction(
            args.team_a,
            args.team_b,
            provider,
            _engine_for(config, args),
            commentator,
        )
    finally:
        await provider.aclose()
        if commentator is not None:
            await commentator.aclose()
    _render_result(prediction.data.context, prediction.result)
    if prediction.data.tactical_analysis:
        print(f"\nTactical analysis: {prediction.data.tactical_analysis}")
    if prediction.commentary:
        print(f"\n{prediction.commentary}")


def _build_parser() -> argparse.ArgumentParser:
    return APP.build_parser()


_USER_ERRORS = (
    ConfigurationError,
    InvalidTeamStatisticsError,
    AcquisitionError,
    json.JSONDecodeError,
    OSError,
)


async def _dispatch(args: argparse.Namespace) -> None:
    try:
        config = load_simulator_config(
            base_path=args.config_file,
            environment=args.config_environment,
        )
        for warning in validate_simulator_config(config):
            print(f"warning: {warning}", file=sys.stderr)
        await args.handler(config, args)
    except _USER_ERRORS as exc:
        raise SystemExit(str(exc)) from exc


def main(argv: Sequence[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level or get_config().log_level)
    asyncio.run(_dispatch(args))


__all__ = ["main"]


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
