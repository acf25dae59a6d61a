# tests/core/test_config.py
from __future__ import annotations

import pytest

from celine.outlet.contracts.broker import QoS
from celine.outlet.core.config import load_output_config, parse_output_config
from celine.outlet.core.errors import ConfigurationError


def _write(path, text: str):
    path.write_text(text, encoding="utf-8")
    return path


class TestParseOutputConfig:
    def test_minimal_defaults(self):
        cfg = parse_output_config({"host": "test.mosquitto.org", "topic": "hello"})
        assert cfg.port is None
        assert cfg.qos == QoS.AT_MOST_ONCE
        assert cfg.retain is False
        assert cfg.version == "3.1.1"
        assert cfg.keep_alive == 15
        assert cfg.clean_session is True
        assert cfg.connect_retry_interval == 10
        assert cfg.max_retries is None
        assert cfg.queue_max_size is None
        assert cfg.codec == "json"

    def test_connection_options(self):
        cfg = parse_output_config(
            {
                "host": "somehost.iot.amazonaws.com",
                "topic": "hello",
                "client_id": "clientidfromaws",
                "ssl": True,
                "cert_file": "certificate.pem.crt",
                "key_file": "private.pem.key",
                "ca_file": "root-CA.crt",
                "will_topic": "status",
                "will_payload": "offline",
                "will_qos": 1,
                "will_retain": True,
            }
        )
        options = cfg.to_connection_options()
        assert options.effective_port == 8883
        assert options.client_id == "clientidfromaws"
        assert options.ca_file == "root-CA.crt"
        assert options.will_qos == QoS.AT_LEAST_ONCE
        assert options.will_retain is True

    @pytest.mark.parametrize(
        "override",
        [
            {"host": ""},
            {"topic": "  "},
            {"qos": 3},
            {"will_qos": -1},
            {"port": 70000},
            {"version": "4"},
            {"connect_retry_interval": 0},
            {"max_retries": -1},
            {"queue_max_size": 0},
            {"queue_overflow": "block"},
            {"cert_file": "only-cert.pem"},
            {"unknown_option": True},
        ],
    )
    def test_invalid_values(self, override):
        raw = {"host": "h", "topic": "t", **override}
        with pytest.raises(ConfigurationError):
            parse_output_config(raw)

    def test_missing_required(self):
        with pytest.raises(ConfigurationError, match="topic"):
            parse_output_config({"host": "h"})

    @pytest.mark.parametrize("raw, expected", [(5, "5"), ("5.0", "5"), (3.1, "3.1")])
    def test_version_normalized(self, raw, expected):
        cfg = parse_output_config({"host": "h", "topic": "t", "version": raw})
        assert cfg.version == expected


class TestLoadOutputConfig:
    def test_env_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MQTT_HOST", "broker.local")
        monkeypatch.delenv("MQTT_PORT", raising=False)
        _write(
            tmp_path / "outlet.yaml",
            'output:\n  host: "${MQTT_HOST}"\n  port: "${MQTT_PORT:-1884}"\n  topic: t\n',
        )

        cfg = load_output_config([str(tmp_path / "*.yaml")])

        assert cfg.host == "broker.local"
        assert cfg.port == 1884

    def test_later_files_override(self, tmp_path):
        _write(tmp_path / "a.yaml", "output:\n  host: a\n  topic: t\n  qos: 1\n")
        _write(tmp_path / "b.yaml", "output:\n  host: b\n")

        cfg = load_output_config([str(tmp_path / "*.yaml")])

        assert cfg.host == "b"
        assert cfg.topic == "t"
        assert cfg.qos == QoS.AT_LEAST_ONCE

    def test_no_files(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_output_config([str(tmp_path / "missing-*.yaml")])

    def test_no_output_section(self, tmp_path):
        _write(tmp_path / "other.yaml", "brokers: {}\n")
        with pytest.raises(FileNotFoundError):
            load_output_config([str(tmp_path / "other.yaml")])

    def test_unset_env_var_is_configuration_error(self, tmp_path, monkeypatch):
        monkeypatch.delenv("OUTLET_TEST_UNSET", raising=False)
        _write(
            tmp_path / "outlet.yaml",
            'output:\n  host: "${OUTLET_TEST_UNSET}"\n  topic: t\n',
        )
        with pytest.raises(ConfigurationError, match="OUTLET_TEST_UNSET"):
            load_output_config([str(tmp_path / "outlet.yaml")])
