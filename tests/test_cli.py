from __future__ import annotations

import csv
import io
import json
import logging
from pathlib import Path
from textwrap import dedent

import pytest

from tire_friction.cli import CliError, build_parser, run_cli
from tire_friction.cli.errors import EXIT_STATUS, reraise_as
from tire_friction.configuration import CONFIG_ENV_VAR
from tire_friction.errors import TireFrictionError

from tests.helpers import contact_frame, write_contact_log


WHEEL_POINT = ((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, 0.0, 100.0))
REPLAY_TARGET = ["--collision-name", "collision", "--link-name", "wheel_front_left"]


@pytest.fixture(autouse=True)
def _cli_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def contact_log(tmp_path: Path) -> Path:
    return write_contact_log(
        tmp_path / "contacts.jsonl",
        [
            contact_frame(0.001, slip_speed=0.05, points=[WHEEL_POINT]),
            contact_frame(0.002, slip_speed=0.05),
            contact_frame(0.003, slip_speed=0.3, points=[WHEEL_POINT]),
        ],
    )


def test_curve_reports_friction_and_segment(capsys) -> None:
    result = run_cli(["curve", "--slip-speed", "0.05", "--reference-speed", "2.0"])

    payload = json.loads(result)
    assert payload["friction"] == pytest.approx(0.275)
    assert payload["slip_ratio"] == pytest.approx(0.025)
    assert payload["speed_ratio"] == pytest.approx(2.0)
    assert payload["segment"] == "rising"
    assert payload["parameters"]["friction_static"] == pytest.approx(1.1)
    assert json.loads(capsys.readouterr().out) == payload


def test_curve_below_static_speed(capsys) -> None:
    payload = json.loads(run_cli(["curve", "--slip-speed", "1.0", "--reference-speed", "0.3"]))

    assert payload["friction"] == pytest.approx(1.1)
    assert payload["segment"] == "static"
    assert payload["slip_ratio"] is None


def test_curve_parameter_flags_override_config(tmp_path: Path) -> None:
    config_path = tmp_path / "estimator.toml"
    config_path.write_text("[tire_friction]\nfriction_static = 1.3\nslip_static = 0.2\n", encoding="utf8")

    payload = json.loads(
        run_cli(
            [
                "--config",
                str(config_path),
                "curve",
                "--slip-speed",
                "0.05",
                "--reference-speed",
                "2.0",
                "--friction-static",
                "2.2",
            ]
        )
    )

    # slip ratio 0.025 on the rising line: 0.025 * 2.2 / 0.2
    assert payload["friction"] == pytest.approx(0.275)
    assert payload["parameters"]["friction_static"] == pytest.approx(2.2)
    assert payload["parameters"]["slip_dynamic"] == pytest.approx(0.3)


def test_curve_reads_pyproject_section(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text(
        dedent(
            """\
            [tool.tire_friction]
            friction_static = 1.4
            """
        ),
        encoding="utf8",
    )

    payload = json.loads(run_cli(["curve", "--slip-speed", "0", "--reference-speed", "0"]))

    assert payload["friction"] == pytest.approx(1.4)


def test_replay_jsonl_output(contact_log: Path) -> None:
    result = run_cli(["replay", str(contact_log), *REPLAY_TARGET])

    rows = [json.loads(line) for line in result.splitlines()]
    assert [row["index"] for row in rows] == [0, 1, 2]
    assert rows[0]["friction"] == pytest.approx(0.275)
    assert rows[1]["friction"] is None
    assert rows[2]["mu_primary"] == pytest.approx(1.05)


def test_replay_csv_updates_only(contact_log: Path) -> None:
    result = run_cli(
        ["replay", str(contact_log), *REPLAY_TARGET, "--format", "csv", "--updates-only"]
    )

    rows = list(csv.DictReader(io.StringIO(result)))
    assert [row["index"] for row in rows] == ["0", "2"]
    assert float(rows[1]["friction"]) == pytest.approx(1.05)
    assert float(rows[1]["mu_secondary"]) == pytest.approx(1.05)


def test_replay_uses_configured_collision(tmp_path: Path, contact_log: Path) -> None:
    (tmp_path / "pyproject.toml").write_text(
        dedent(
            """\
            [tool.tire_friction]
            link_name = "wheel_front_left"
            collision_name = "collision"
            """
        ),
        encoding="utf8",
    )

    result = run_cli(["replay", str(contact_log), "--updates-only"])

    assert len(result.splitlines()) == 2


@pytest.mark.parametrize(
    ("extra_args", "status"),
    [
        ([], 2),
        (["--collision-name", "collision", "--link-name", "axle"], 5),
        (["--collision-name", "collision", "--model", "trailer"], 2),
    ],
)
def test_replay_errors_exit_with_category_status(
    contact_log: Path, capsys, caplog, extra_args: list[str], status: int
) -> None:
    caplog.set_level(logging.ERROR, logger="tire_friction.cli")

    with pytest.raises(SystemExit) as excinfo:
        run_cli(["replay", str(contact_log), *extra_args])

    assert excinfo.value.code == status
    assert capsys.readouterr().out.strip()
    [record] = [r for r in caplog.records if getattr(r, "event", None) == "cli.error"]
    assert record.status_code == status


def test_replay_missing_log_is_not_found(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        run_cli(["replay", str(tmp_path / "absent.jsonl"), *REPLAY_TARGET])

    assert excinfo.value.code == 4


def test_replay_malformed_log_is_io_error(tmp_path: Path) -> None:
    log = tmp_path / "broken.jsonl"
    log.write_text("[1, 2, 3]\n", encoding="utf8")

    with pytest.raises(SystemExit) as excinfo:
        run_cli(["replay", str(log), *REPLAY_TARGET])

    assert excinfo.value.code == 3


@pytest.mark.parametrize(
    "frame",
    [
        {"links": {"car::wheel_front_left": [1, 2]}},
        {"time": [0.001], "links": {}},
    ],
)
def test_replay_malformed_frame_fields_are_io_errors(
    tmp_path: Path, capsys, frame: dict
) -> None:
    log = tmp_path / "broken.jsonl"
    log.write_text(json.dumps(frame) + "\n", encoding="utf8")

    with pytest.raises(SystemExit) as excinfo:
        run_cli(["replay", str(log), "--collision-name", "collision"])

    assert excinfo.value.code == 3
    assert "Line 1" in capsys.readouterr().out


def test_unreadable_config_is_io_error(tmp_path: Path, capsys) -> None:
    config_path = tmp_path / "broken.toml"
    config_path.write_text("friction_static = \n", encoding="utf8")

    with pytest.raises(SystemExit) as excinfo:
        run_cli(["--config", str(config_path), "curve", "--slip-speed", "0", "--reference-speed", "1"])

    assert excinfo.value.code == 3
    assert "Unable to read configuration" in capsys.readouterr().out


def test_parser_defaults_follow_config() -> None:
    parser = build_parser({"logging": {"level": "debug", "format": "text"}, "engine": "bullet"})

    namespace = parser.parse_args(["replay", "contacts.jsonl"])

    assert namespace.log_level == "debug"
    assert namespace.log_format == "text"
    assert namespace.engine == "bullet"
    assert namespace.step_size == pytest.approx(0.001)
    assert namespace.tick_duration is None


def test_cli_error_status_follows_category() -> None:
    error = CliError("missing", category="not_found", context={"path": Path("x.jsonl")})

    assert error.status_code == EXIT_STATUS["not_found"] == 4
    assert error.context == {"path": "x.jsonl"}
    assert isinstance(error, TireFrictionError)
    with pytest.raises(ValueError, match="mystery"):
        CliError("boom", category="mystery")


def test_cli_error_logs_once_with_structured_extra(caplog) -> None:
    caplog.set_level(logging.ERROR, logger="tire_friction.cli")
    error = CliError("bad flag", category="usage", context={"flag": "--dt"})

    error.log()
    error.log()

    [record] = caplog.records
    assert record.getMessage() == "bad flag"
    assert record.event == "cli.error"
    assert record.category == "usage"
    assert record.status_code == 2
    assert record.context == {"flag": "--dt"}
    assert error.logged


def test_reraise_as_maps_exception_types_to_categories() -> None:
    rules = {FileNotFoundError: "not_found", OSError: "io"}

    with pytest.raises(CliError) as excinfo:
        with reraise_as(rules, context={"log": Path("a.jsonl")}):
            raise FileNotFoundError("gone")

    assert excinfo.value.category == "not_found"
    assert excinfo.value.context == {"log": "a.jsonl"}
    assert isinstance(excinfo.value.__cause__, FileNotFoundError)

    with pytest.raises(KeyError):
        with reraise_as(rules):
            raise KeyError("unmapped")
