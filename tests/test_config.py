"""Tests for configuration parsing and log level names."""

import json
import logging

import pytest

from remote_ui.config import ClientConfig, load_config_file, load_nif_paths, parse_config
from remote_ui.log import TRACE, parse_log_level


class TestParseConfig:
    """Defaults, YAML file and command line flags."""

    def test_defaults(self):
        config = parse_config([])
        assert config.host == "localhost"
        assert config.port == 3000
        assert config.log_level == "info"
        assert (config.width, config.height) == (1320, 800)
        assert config.devices == ["cpu", "ipu"]
        assert config.save_path == "frame.pfm"
        assert config.nif_paths == ""

    def test_short_size_flags(self):
        config = parse_config(["-w", "640", "-H", "480"])
        assert (config.width, config.height) == (640, 480)

    def test_yaml_file_then_cli_override(self, tmp_path):
        cfg = tmp_path / "client.yaml"
        cfg.write_text("host: render-box\nport: 4000\nlog-level: debug\ndevices: cpu, ipu, gpu\n", encoding="utf-8")

        config = parse_config(["--config", str(cfg), "--port", "5000"])

        assert config.host == "render-box"
        assert config.port == 5000
        assert config.log_level == "debug"
        assert config.devices == ["cpu", "ipu", "gpu"]

    def test_invalid_log_level_rejected(self):
        with pytest.raises(SystemExit):
            parse_config(["--log-level", "verbose"])

    def test_unknown_keys_ignored(self, caplog):
        with caplog.at_level(logging.WARNING, logger="remote_ui.config"):
            config = ClientConfig.from_dict({"host": "a", "colour": "blue"})
        assert config.host == "a"
        assert "colour" in caplog.text

    def test_non_mapping_yaml_rejected(self, tmp_path):
        cfg = tmp_path / "client.yaml"
        cfg.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config_file(cfg)


class TestNifPaths:
    """JSON menu of remote NIF paths."""

    def test_load(self, tmp_path):
        path = tmp_path / "nifs.json"
        path.write_text(json.dumps({"lego": "/models/lego.nif", "chair": "/models/chair.nif"}), encoding="utf-8")
        assert load_nif_paths(path) == {"lego": "/models/lego.nif", "chair": "/models/chair.nif"}

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "nifs.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValueError):
            load_nif_paths(path)

    def test_non_string_path(self, tmp_path):
        path = tmp_path / "nifs.json"
        path.write_text('{"lego": 3}', encoding="utf-8")
        with pytest.raises(ValueError):
            load_nif_paths(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            load_nif_paths(tmp_path / "absent.json")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "nifs.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError):
            load_nif_paths(path)


class TestLogLevels:
    @pytest.mark.parametrize(
        "name, level",
        [
            ("trace", TRACE),
            ("debug", logging.DEBUG),
            ("INFO", logging.INFO),
            ("warn", logging.WARNING),
            ("err", logging.ERROR),
            ("critical", logging.CRITICAL),
        ],
    )
    def test_known_levels(self, name, level):
        assert parse_log_level(name) == level

    def test_off_silences_everything(self):
        assert parse_log_level("off") > logging.CRITICAL

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            parse_log_level("loud")
