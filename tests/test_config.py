"""Tests for prune timer configuration loading and validation."""

import time
from pathlib import Path
from unittest.mock import patch

import pytest

from prune_timer.config import (
    PruneTimerConfig,
    load_config,
    parse_bool,
    read_config_file,
    read_env,
)
from prune_timer.exceptions import ConfigError


class TestPruneTimerConfig:
    """Tests for the PruneTimerConfig dataclass."""

    def test_default_config(self):
        """Test default configuration values."""
        config = PruneTimerConfig()
        assert config.enabled is True
        assert config.schedule == "daily"
        assert config.randomized_delay == "1h"
        assert config.volumes is False
        assert config.until == "24h"
        assert config.filters == []
        assert config.prune_all is True
        assert config.persistent is True
        assert config.service_name == "docker-prune.service"
        assert config.timer_name == "docker-prune.timer"

    @pytest.mark.parametrize("delay", ["0", "90", "30s", "15min", "1h 30min", "2h30m", "1.5h"])
    def test_valid_randomized_delay(self, delay):
        config = PruneTimerConfig(randomized_delay=delay)
        assert config.randomized_delay == delay

    @pytest.mark.parametrize("delay", ["", "soon", "1 hour later", "-5m", "h"])
    def test_invalid_randomized_delay(self, delay):
        with pytest.raises(ValueError, match="randomized_delay"):
            PruneTimerConfig(randomized_delay=delay)

    @pytest.mark.parametrize("delay", ["1month", "2ms", "3M", "1h30"])
    def test_units_sharing_a_prefix(self, delay):
        assert PruneTimerConfig(randomized_delay=delay).randomized_delay == delay

    def test_long_invalid_delay_rejected_quickly(self):
        """A long digit run followed by junk is rejected without backtracking blowup."""
        start = time.monotonic()
        with pytest.raises(ValueError, match="randomized_delay"):
            PruneTimerConfig(randomized_delay="1" * 40 + "x")
        assert time.monotonic() - start < 1.0

    def test_empty_schedule_rejected(self):
        with pytest.raises(ValueError, match="schedule"):
            PruneTimerConfig(schedule="  ")

    def test_newline_rejected(self):
        """Values end up in unit files, so embedded newlines are refused."""
        with pytest.raises(ValueError, match="newlines"):
            PruneTimerConfig(schedule="daily\nExecStartPre=/bin/false")

    def test_newline_in_filter_rejected(self):
        with pytest.raises(ValueError, match="newlines"):
            PruneTimerConfig(filters=["label=a\nb"])

    def test_empty_filter_rejected(self):
        with pytest.raises(ValueError, match="filters"):
            PruneTimerConfig(filters=["label=keep", ""])

    def test_unit_suffix_rejected(self):
        with pytest.raises(ValueError, match="suffix"):
            PruneTimerConfig(unit_name="docker-prune.timer")

    def test_invalid_unit_name(self):
        with pytest.raises(ValueError, match="unit_name"):
            PruneTimerConfig(unit_name="docker prune")

    def test_relative_docker_binary_rejected(self):
        with pytest.raises(ValueError, match="absolute"):
            PruneTimerConfig(docker_binary="docker")

    @pytest.mark.parametrize(
        "binary",
        ["/opt/my docker/docker", "/opt/100%/docker", "/opt/$HOME/docker", '/opt/"x"/docker', "/opt\\docker"],
    )
    def test_docker_binary_unsafe_for_exec_start_rejected(self, binary):
        """ExecStart= would split or expand these paths."""
        with pytest.raises(ValueError, match="docker_binary"):
            PruneTimerConfig(docker_binary=binary)

    def test_docker_binary_plain_path_accepted(self):
        config = PruneTimerConfig(docker_binary="/usr/local/bin/docker-26.1")
        assert config.docker_binary == "/usr/local/bin/docker-26.1"

    def test_boolean_fields_type_checked(self):
        with pytest.raises(ValueError, match="enabled"):
            PruneTimerConfig(enabled="yes")

    def test_to_dict_round_trip(self):
        config = PruneTimerConfig(volumes=True, filters=["label=tmp"])
        restored = PruneTimerConfig.from_dict(config.to_dict())
        assert restored == config

    def test_from_dict_single_filter_string(self):
        config = PruneTimerConfig.from_dict({"filters": "label!=keep"})
        assert config.filters == ["label!=keep"]

    def test_from_dict_null_until_disables_filter(self):
        config = PruneTimerConfig.from_dict({"until": None})
        assert config.until == ""

    def test_from_dict_numeric_delay(self):
        """YAML reads `randomized_delay: 3600` as an int."""
        config = PruneTimerConfig.from_dict({"randomized_delay": 3600})
        assert config.randomized_delay == "3600"

    def test_from_dict_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown configuration keys: colour"):
            PruneTimerConfig.from_dict({"colour": "blue"})

    def test_with_overrides_skips_none(self):
        config = PruneTimerConfig()
        assert config.with_overrides(volumes=None, schedule=None) is config

    def test_with_overrides_applies_and_validates(self):
        config = PruneTimerConfig().with_overrides(volumes=True, until="")
        assert config.volumes is True
        assert config.until == ""

        with pytest.raises(ValueError):
            PruneTimerConfig().with_overrides(randomized_delay="whenever")


class TestParseBool:
    @pytest.mark.parametrize("raw", ["1", "true", "TRUE", "yes", "On", " true "])
    def test_true_values(self, raw):
        assert parse_bool(raw) is True

    @pytest.mark.parametrize("raw", ["0", "false", "No", "off"])
    def test_false_values(self, raw):
        assert parse_bool(raw) is False

    def test_invalid_value(self):
        with pytest.raises(ConfigError, match="PRUNE_TIMER_VOLUMES"):
            parse_bool("maybe", "PRUNE_TIMER_VOLUMES")


class TestReadConfigFile:
    """Tests for YAML config file reading."""

    def test_nested_section(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "docker_prune_timer:\n"
            "  schedule: weekly\n"
            "  volumes: true\n"
            "  filters:\n"
            "    - label=a\n"
            "    - label=b\n"
        )
        data = read_config_file(path)
        assert data == {"schedule": "weekly", "volumes": True, "filters": ["label=a", "label=b"]}

    def test_top_level_keys(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("until: 72h\nenabled: false\n")
        assert read_config_file(path) == {"until": "72h", "enabled": False}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert read_config_file(path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            read_config_file(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("schedule: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            read_config_file(path)

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- daily\n- weekly\n")
        with pytest.raises(ConfigError, match="mapping"):
            read_config_file(path)


class TestReadEnv:
    def test_reads_prefixed_variables(self):
        env = {
            "PRUNE_TIMER_SCHEDULE": "Sun 03:00",
            "PRUNE_TIMER_VOLUMES": "yes",
            "PRUNE_TIMER_FILTERS": "label=a, label=b,,",
            "UNRELATED": "ignored",
        }
        assert read_env(env) == {
            "schedule": "Sun 03:00",
            "volumes": True,
            "filters": ["label=a", "label=b"],
        }

    def test_empty_until_kept(self):
        assert read_env({"PRUNE_TIMER_UNTIL": ""}) == {"until": ""}


class TestLoadConfig:
    """Tests for layered configuration resolution."""

    def test_defaults_only(self):
        assert load_config(env={}) == PruneTimerConfig()

    def test_env_overrides_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("schedule: weekly\nuntil: 48h\n")

        config = load_config(path, env={"PRUNE_TIMER_UNTIL": "168h"})

        assert config.schedule == "weekly"
        assert config.until == "168h"

    def test_path_from_environment(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("volumes: true\n")

        config = load_config(env={"PRUNE_TIMER_CONFIG": str(path)})

        assert config.volumes is True

    def test_system_config_used_when_present(self, tmp_path):
        system_file = tmp_path / "system.yaml"
        system_file.write_text("schedule: hourly\n")

        with patch("prune_timer.config.DEFAULT_CONFIG_FILE", system_file):
            config = load_config(env={})

        assert config.schedule == "hourly"

    def test_validation_error_wrapped(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("randomized_delay: eventually\n")

        with pytest.raises(ConfigError, match="randomized_delay"):
            load_config(path, env={})

    def test_unknown_key_wrapped(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("schedual: daily\n")

        with pytest.raises(ConfigError, match="schedual"):
            load_config(Path(path), env={})
