"""Unit tests for the calendarcore command line interface."""

import io
import json

import pytest

from calendarcore.cli import normalize_text, run
from calendarcore.cli.parser import create_parser
from calendarcore.ics.exceptions import MissingRequiredPropertyError
from calendarcore.ics.recurrence import RecurrenceNormalizer

EVENT = "\n".join(
    [
        "BEGIN:VCALENDAR",
        "BEGIN:VEVENT",
        "UID:la@example.com",
        "DTSTART;TZID=America/Los_Angeles:20090821T010203",
        "RDATE;TZID=America/Los_Angeles;VALUE=DATE:20110601,20110602,20110603",
        "DURATION:P2H",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
)

BROKEN_EVENT = "BEGIN:VEVENT\nUID:broken\nSUMMARY:no start\nDURATION:PT1H\nEND:VEVENT"


@pytest.fixture
def event_file(isolated_env):
    """Calendar file with a single valid event."""
    path = isolated_env / "event.ics"
    path.write_text(EVENT)
    return path


@pytest.fixture
def mixed_file(isolated_env):
    """Calendar file with one valid and one invalid event."""
    path = isolated_env / "mixed.ics"
    path.write_text(EVENT.replace("END:VCALENDAR", f"{BROKEN_EVENT}\nEND:VCALENDAR"))
    return path


class TestCreateParser:
    """Tests for argument parsing."""

    def test_create_parser_when_no_arguments_then_defaults(self) -> None:
        """Test unspecified options stay unset so config can apply."""
        args = create_parser().parse_args([])

        assert args.file is None
        assert args.config is None
        assert args.encoding is None
        assert args.timezone_backend is None
        assert args.skip_invalid is None
        assert args.verbose is False
        assert args.quiet is False

    def test_create_parser_when_options_given_then_parsed(self) -> None:
        """Test all options together."""
        args = create_parser().parse_args(
            [
                "--encoding",
                "parameters",
                "--timezone-backend",
                "pytz",
                "--skip-invalid",
                "--log-level",
                "debug",
                "cal.ics",
            ]
        )

        assert args.encoding == "parameters"
        assert args.timezone_backend == "pytz"
        assert args.skip_invalid is True
        assert args.log_level == "DEBUG"
        assert args.file == "cal.ics"

    @pytest.mark.parametrize(
        "argv",
        [["--encoding", "wire"], ["--timezone-backend", "dateutil"], ["--log-level", "LOUD"]],
    )
    def test_create_parser_when_invalid_choice_then_exits_with_usage_error(self, argv) -> None:
        """Test argparse rejects invalid values with status 2."""
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(argv)

        assert exc_info.value.code == 2


class TestRun:
    """Tests for running the CLI end to end."""

    def test_run_when_calendar_file_then_prints_storage_json(self, event_file, capsys) -> None:
        """Test a calendar file is normalized to storage mappings."""
        assert run([str(event_file)]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output == [
            {
                "rrule": None,
                "rdate": "America/Los_Angeles;20110601,20110602,20110603",
                "exrule": None,
                "exdate": None,
                "dtstart": 1250841723000,
                "eventTimezone": "America/Los_Angeles",
                "duration": "P2H",
                "allDay": 0,
            }
        ]

    def test_run_when_parameters_encoding_then_keeps_wire_form(self, event_file, capsys) -> None:
        """Test --encoding parameters changes the RDATE form."""
        assert run(["--encoding", "parameters", str(event_file)]) == 0

        [mapping] = json.loads(capsys.readouterr().out)
        assert mapping["rdate"] == "TZID=America/Los_Angeles;VALUE=DATE:20110601,20110602,20110603"

    def test_run_when_pytz_backend_then_same_result(self, event_file, capsys) -> None:
        """Test both timezone backends agree."""
        assert run(["--timezone-backend", "pytz", str(event_file)]) == 0

        [mapping] = json.loads(capsys.readouterr().out)
        assert mapping["dtstart"] == 1250841723000

    def test_run_when_bare_properties_on_stdin_then_normalizes_block(
        self, isolated_env, monkeypatch, capsys
    ) -> None:
        """Test a property block without VEVENT wrapper is read from stdin."""
        monkeypatch.setattr(
            "sys.stdin",
            io.StringIO("DTSTART;VALUE=DATE:20090821\nDTEND;VALUE=DATE:20090823\n"),
        )

        assert run([]) == 0

        [mapping] = json.loads(capsys.readouterr().out)
        assert mapping["dtstart"] == 1250812800000
        assert mapping["duration"] == "P2D"
        assert mapping["allDay"] == 1

    def test_run_when_invalid_event_then_exits_with_format_error(
        self, mixed_file, capsys
    ) -> None:
        """Test an invalid event fails the run by default."""
        assert run([str(mixed_file)]) == 1

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "calendarcore: error: Event has no DTSTART property" in captured.err

    def test_run_when_skip_invalid_then_outputs_valid_events(self, mixed_file, capsys) -> None:
        """Test --skip-invalid drops the broken event."""
        assert run(["--skip-invalid", str(mixed_file)]) == 0

        output = json.loads(capsys.readouterr().out)
        assert len(output) == 1
        assert output[0]["eventTimezone"] == "America/Los_Angeles"

    def test_run_when_skipping_then_warning_on_stderr(self, mixed_file, capsys) -> None:
        """Test skipped events are reported on the console."""
        assert run(["--skip-invalid", "--no-log-colors", str(mixed_file)]) == 0

        assert "Skipping event broken" in capsys.readouterr().err

    def test_run_when_quiet_then_warning_suppressed(self, mixed_file, capsys) -> None:
        """Test -q keeps warnings off the console."""
        assert run(["-q", "--skip-invalid", str(mixed_file)]) == 0

        assert "Skipping event" not in capsys.readouterr().err

    def test_run_when_malformed_line_then_exits_with_format_error(
        self, isolated_env, capsys
    ) -> None:
        """Test content-line errors are reported."""
        path = isolated_env / "bad.ics"
        path.write_text("BEGIN:VEVENT\nthis line has no separator\nEND:VEVENT\n")

        assert run([str(path)]) == 1
        assert "Expected ':' in content line" in capsys.readouterr().err

    def test_run_when_file_missing_then_exits_with_error(self, isolated_env, capsys) -> None:
        """Test unreadable input is reported."""
        assert run([str(isolated_env / "missing.ics")]) == 1
        assert "cannot read" in capsys.readouterr().err

    def test_run_when_backend_misconfigured_then_exits_with_usage_error(
        self, event_file, monkeypatch, capsys
    ) -> None:
        """Test an invalid configured backend is a usage error."""
        monkeypatch.setenv("CALENDARCORE_TIMEZONE_BACKEND", "nope")

        assert run([str(event_file)]) == 2
        assert "Unknown timezone backend" in capsys.readouterr().err

    def test_run_when_config_file_given_then_applies_it(
        self, event_file, isolated_env, capsys
    ) -> None:
        """Test --config selects a YAML file."""
        config = isolated_env / "cli.yaml"
        config.write_text("normalizer:\n  rdate_encoding: parameters\n")

        assert run(["--config", str(config), str(event_file)]) == 0

        [mapping] = json.loads(capsys.readouterr().out)
        assert mapping["rdate"].startswith("TZID=")


class TestNormalizeText:
    """Tests for the text-to-mappings helper."""

    def test_normalize_text_when_bare_block_invalid_then_raises(self, fixed_resolver) -> None:
        """Test errors propagate to the caller."""
        with pytest.raises(MissingRequiredPropertyError):
            normalize_text("SUMMARY:nothing", RecurrenceNormalizer(fixed_resolver))

    def test_normalize_text_when_several_events_then_one_mapping_each(
        self, fixed_resolver
    ) -> None:
        """Test each VEVENT produces a mapping in order."""
        text = (
            "BEGIN:VEVENT\nDTSTART:20090821T120000Z\nDURATION:PT1H\nEND:VEVENT\n"
            "BEGIN:VEVENT\nDTSTART:20090822T120000Z\nDURATION:PT2H\nEND:VEVENT\n"
        )

        mappings = normalize_text(text, RecurrenceNormalizer(fixed_resolver))

        assert [m["duration"] for m in mappings] == ["PT1H", "PT2H"]
