"""Command line application entry point for the tire friction estimator."""

from __future__ import annotations

import argparse
import csv
import io
import json
import sys
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence

from ..configuration import load_config
from ..errors import EstimatorConfigError
from ..logging.config import setup_logging
from ..model.friction_curve import LOW_SPEED_FRACTION, compute_friction, curve_segment
from ..parameters import EstimatorOptions, FrictionParameters
from ..replay import iter_frames, replay
from .errors import CliError, reraise_as

__all__ = ["build_parser", "main", "run_cli"]


CommandHandler = Callable[[argparse.Namespace, Mapping[str, Any]], str]

_PARAMETER_FLAGS = (
    ("friction_static", "Static friction coefficient (default 1.1)."),
    ("friction_dynamic", "Dynamic friction coefficient (default 1.0)."),
    ("slip_static", "Slip ratio of peak friction (default 0.1)."),
    ("slip_dynamic", "Slip ratio where sliding friction starts (default 0.2)."),
    ("speed_static", "Reference speed below which slip is ignored (default 1.0)."),
)


def _merged_settings(namespace: argparse.Namespace, config: Mapping[str, Any]) -> dict[str, Any]:
    settings = {key: value for key, value in config.items() if not key.startswith("_")}
    for key in ("link_name", "collision_name"):
        value = getattr(namespace, key, None)
        if value is not None:
            settings[key] = value
    for key, _ in _PARAMETER_FLAGS:
        value = getattr(namespace, key, None)
        if value is not None:
            settings[key] = value
    return settings


def _handle_curve(namespace: argparse.Namespace, config: Mapping[str, Any]) -> str:
    params = FrictionParameters.from_config(_merged_settings(namespace, config))
    slip_speed = float(namespace.slip_speed)
    reference_speed = float(namespace.reference_speed)

    friction = compute_friction(slip_speed, reference_speed, params)
    speed_ratio = abs(reference_speed) / abs(params.speed_static)
    if speed_ratio < LOW_SPEED_FRACTION:
        slip_ratio = None
        segment = "static"
    else:
        slip_ratio = abs(slip_speed) / abs(reference_speed)
        segment = curve_segment(slip_ratio, params)

    payload = {
        "friction": friction,
        "slip_ratio": slip_ratio,
        "speed_ratio": speed_ratio,
        "segment": segment,
        "parameters": params.as_dict(),
    }
    return json.dumps(payload, indent=2, sort_keys=True)


def _render_ticks(ticks: Sequence[Mapping[str, Any]], fmt: str) -> str:
    if fmt == "csv":
        buffer = io.StringIO()
        writer = csv.DictWriter(
            buffer,
            fieldnames=["index", "time", "friction", "mu_primary", "mu_secondary"],
            lineterminator="\n",
        )
        writer.writeheader()
        for tick in ticks:
            writer.writerow({key: "" if value is None else value for key, value in tick.items()})
        return buffer.getvalue()
    return "\n".join(json.dumps(tick, sort_keys=True) for tick in ticks)


def _handle_replay(namespace: argparse.Namespace, config: Mapping[str, Any]) -> str:
    settings = _merged_settings(namespace, config)
    options = EstimatorOptions.from_config(settings)
    if options.collision_name is None:
        raise CliError(
            "A collision name is required (--collision-name or collision_name in the config).",
            category="usage",
        )

    context = {
        "log": namespace.log,
        "collision_name": options.collision_name,
        "link_name": options.link_name,
    }
    with reraise_as({FileNotFoundError: "not_found", ValueError: "io"}, context=context):
        frames = list(iter_frames(namespace.log))

    model_name = namespace.model or settings.get("model_name")
    with reraise_as({EstimatorConfigError: "config", ValueError: "usage"}, context=context):
        ticks = replay(
            frames,
            options,
            model_name=model_name,
            tick_duration=namespace.tick_duration,
            engine_type=namespace.engine,
            max_step_size=namespace.step_size,
        )

    rows = [tick.as_dict() for tick in ticks]
    if namespace.updates_only:
        rows = [row for row in rows if row["friction"] is not None]
    return _render_ticks(rows, namespace.format)


def _add_parameter_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("friction parameters")
    for key, help_text in _PARAMETER_FLAGS:
        group.add_argument(
            f"--{key.replace('_', '-')}",
            dest=key,
            type=float,
            default=None,
            help=help_text,
        )


def build_parser(config: Optional[Mapping[str, Any]] = None) -> argparse.ArgumentParser:
    config = dict(config or {})
    logging_cfg = dict(config.get("logging", {}))

    parser = argparse.ArgumentParser(
        prog="tire-friction",
        description="Slip-dependent tire friction estimation from contact data.",
    )
    parser.add_argument(
        "--config",
        dest="config_path",
        type=Path,
        default=None,
        help="Path to a TOML configuration file or pyproject.toml.",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default=logging_cfg.get("level", "info"),
        help="Logging level (e.g. debug, info, warning).",
    )
    parser.add_argument(
        "--log-output",
        dest="log_output",
        default=logging_cfg.get("output", "stderr"),
        help="Logging destination (stdout, stderr or a file path).",
    )
    parser.add_argument(
        "--log-format",
        dest="log_format",
        choices=("json", "text"),
        default=logging_cfg.get("format", "json"),
        help="Logging formatter (json or text).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    curve = subparsers.add_parser(
        "curve", help="Evaluate the friction curve for a slip and reference speed."
    )
    curve.add_argument("--slip-speed", dest="slip_speed", type=float, required=True)
    curve.add_argument("--reference-speed", dest="reference_speed", type=float, required=True)
    _add_parameter_arguments(curve)
    curve.set_defaults(handler=_handle_curve)

    replay_parser = subparsers.add_parser(
        "replay", help="Replay a JSON Lines contact log through the estimator."
    )
    replay_parser.add_argument("log", type=Path, help="Contact log (.jsonl or .jsonl.gz).")
    replay_parser.add_argument("--model", default=None, help="Model owning the monitored link.")
    replay_parser.add_argument("--link-name", dest="link_name", default=None)
    replay_parser.add_argument("--collision-name", dest="collision_name", default=None)
    replay_parser.add_argument(
        "--dt",
        dest="tick_duration",
        type=float,
        default=None,
        help="Tick duration in seconds (default: the engine step size).",
    )
    replay_parser.add_argument(
        "--step-size",
        dest="step_size",
        type=float,
        default=float(config.get("max_step_size", 0.001)),
        help="Physics engine maximum step size in seconds.",
    )
    replay_parser.add_argument(
        "--engine",
        default=str(config.get("engine", "ode")),
        help="Physics engine type reported to the estimator.",
    )
    replay_parser.add_argument(
        "--format",
        choices=("jsonl", "csv"),
        default="jsonl",
        help="Output format for per-tick results.",
    )
    replay_parser.add_argument(
        "--updates-only",
        action="store_true",
        help="Only print ticks that produced a friction coefficient.",
    )
    _add_parameter_arguments(replay_parser)
    replay_parser.set_defaults(handler=_handle_replay)

    return parser


def run_cli(args: Optional[Sequence[str]] = None) -> str:
    """Execute the ``tire-friction`` command line interface."""

    config_parser = argparse.ArgumentParser(add_help=False)
    config_parser.add_argument("--config", dest="config_path", type=Path, default=None)
    config_parser.add_argument("--log-level", dest="log_level", default=None)
    config_parser.add_argument("--log-output", dest="log_output", default=None)
    config_parser.add_argument("--log-format", dest="log_format", default=None)
    preliminary, _ = config_parser.parse_known_args(args)

    try:
        config = load_config(preliminary.config_path)
    except (OSError, ValueError) as exc:
        error = CliError(
            f"Unable to read configuration: {exc}",
            category="io",
            context={"config": preliminary.config_path},
        )
        error.log(exc_info=exc)
        sys.stdout.write(f"{error}\n")
        raise SystemExit(error.status_code) from exc

    logging_config = dict(config.get("logging", {}))
    if preliminary.log_level is not None:
        logging_config["level"] = preliminary.log_level
    if preliminary.log_output is not None:
        logging_config["output"] = preliminary.log_output
    if preliminary.log_format is not None:
        logging_config["format"] = preliminary.log_format
    logging_config.setdefault("level", "info")
    logging_config.setdefault("output", "stderr")
    logging_config.setdefault("format", "json")
    config["logging"] = logging_config
    setup_logging(config)

    parser = build_parser(config)
    namespace = parser.parse_args(args)

    handler: CommandHandler | None = getattr(namespace, "handler", None)
    if handler is None:
        raise CliError(
            f"Unknown command '{getattr(namespace, 'command', None)}'.",
            category="usage",
            context={"command": getattr(namespace, "command", None)},
        )

    try:
        result = handler(namespace, config)
    except CliError as exc:
        exc.log()
        message = str(exc)
        if message:
            sys.stdout.write(message)
            if not message.endswith("\n"):
                sys.stdout.write("\n")
        raise SystemExit(exc.status_code) from exc
    if result:
        sys.stdout.write(result)
        if not result.endswith("\n"):
            sys.stdout.write("\n")
    return result


def main() -> None:  # pragma: no cover - thin wrapper
    run_cli()


if __name__ == "__main__":  # pragma: no cover - CLI invocation guard
    main()
