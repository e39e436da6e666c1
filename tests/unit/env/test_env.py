import pytest
from pydantic import ValidationError

from loopworks.env import Env, TimeParser, load_env
from loopworks.errors import ConfigurationError


class TestTimeParser:
    def test_parses_seconds(self):
        assert TimeParser("30s").time == 30

    def test_parses_milliseconds(self):
        assert TimeParser("10ms").time == pytest.approx(0.01)

    def test_parses_compound_durations(self):
        assert TimeParser("1m30s").time == 90

    def test_parses_fractional_values(self):
        assert TimeParser("1.5s").time == pytest.approx(1.5)

    def test_bare_numbers_are_seconds(self):
        assert TimeParser(5).time == 5.0
        assert TimeParser("2").time == 2.0

    def test_unparseable_duration_raises(self):
        with pytest.raises(ValueError):
            TimeParser("soon")

    @pytest.mark.parametrize("duration", ["-5s", "10x", "5s later", "1.5.5s", ""])
    def test_rejects_partially_matching_durations(self, duration: str):
        with pytest.raises(ValueError):
            TimeParser(duration)

    def test_surrounding_whitespace_is_ignored(self):
        assert TimeParser(" 250ms ").time == pytest.approx(0.25)


class TestEnvDefaults:
    def test_default_durations(self):
        env = Env()

        assert env.tick_interval == 1
        assert env.monitor_max_duration == 30
        assert env.pool_poll_interval == pytest.approx(0.01)
        assert env.blocking_timeout == 10

    def test_default_sizes(self):
        env = Env()

        assert env.LOOPWORKS_LAG_HISTORY_SIZE == 100
        assert env.LOOPWORKS_BLOCKING_CHUNK_SIZE == 1_000_000
        assert env.LOOPWORKS_POOL_SIZE >= 1
        assert env.LOOPWORKS_EXPOSE_GC is False

    def test_fields_are_strict(self):
        with pytest.raises(ValidationError):
            Env(LOOPWORKS_POOL_SIZE="2")

    def test_unit_type_is_restricted(self):
        with pytest.raises(ValidationError):
            Env(LOOPWORKS_EXECUTION_UNIT="fiber")

    @pytest.mark.parametrize("duration", ["-5s", "10x"])
    def test_invalid_durations_raise_configuration_error(self, duration: str):
        env = Env(LOOPWORKS_LAG_MAX_DURATION=duration)

        with pytest.raises(ConfigurationError):
            env.monitor_max_duration


class TestLoadEnv:
    def test_reads_process_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LOOPWORKS_LAG_HISTORY_SIZE", "50")
        monkeypatch.setenv("LOOPWORKS_LAG_BACKGROUND_ACTIVITY", "true")

        env = load_env(env_file=str(tmp_path / "missing.env"))

        assert env.LOOPWORKS_LAG_HISTORY_SIZE == 50
        assert env.LOOPWORKS_LAG_BACKGROUND_ACTIVITY is True

    def test_env_file_overrides_process_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LOOPWORKS_POOL_SIZE", "7")

        env_file = tmp_path / ".env"
        env_file.write_text("LOOPWORKS_POOL_SIZE=3\nLOOPWORKS_EXPOSE_GC=yes\n")

        env = load_env(env_file=str(env_file))

        assert env.LOOPWORKS_POOL_SIZE == 3
        assert env.LOOPWORKS_EXPOSE_GC is True

    def test_explicit_override_wins(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("LOOPWORKS_EXECUTION_UNIT=process\n")

        env = load_env(
            env_file=str(env_file),
            override={"LOOPWORKS_EXECUTION_UNIT": "thread"},
        )

        assert env.LOOPWORKS_EXECUTION_UNIT == "thread"

    def test_durations_from_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("LOOPWORKS_LAG_TICK_INTERVAL=16ms\n")

        env = load_env(env_file=str(env_file))

        assert env.tick_interval == pytest.approx(0.016)
