from __future__ import annotations

from squatprobe.config import default_workers, load_env_settings
from squatprobe.models import Config


def test_env_settings_defaults():
    settings = load_env_settings(environ={})
    assert settings["dns"] is None
    assert settings["dns_timeout"] == 2.0
    assert settings["tls_timeout"] == 3.0
    assert settings["http_timeout"] == 4.0
    assert settings["tls"] is True
    assert settings["http"] is False
    assert settings["follow"] is False
    assert settings["workers"] == default_workers()
    assert settings["log_level"] == "info"


def test_env_settings_overrides_and_bad_values():
    settings = load_env_settings(
        environ={
            "SQUATPROBE_DNS": " 1.1.1.1 ",
            "SQUATPROBE_DNS_TIMEOUT": "0.5",
            "SQUATPROBE_HTTP_TIMEOUT": "soon",
            "SQUATPROBE_WORKERS": "12",
            "SQUATPROBE_TLS": "off",
            "SQUATPROBE_FOLLOW": "yes",
            "SQUATPROBE_LOG_LEVEL": "debug",
        }
    )
    assert settings["dns"] == "1.1.1.1"
    assert settings["dns_timeout"] == 0.5
    assert settings["http_timeout"] == 4.0
    assert settings["workers"] == 12
    assert settings["tls"] is False
    assert settings["follow"] is True
    assert settings["log_level"] == "debug"


def test_config_with_defaults_returns_new_instance():
    cfg = Config(dns_timeout=-1, http_timeout=1.5)
    fixed = cfg.with_defaults()
    assert fixed is not cfg
    assert fixed.dns_timeout == 2.0
    assert fixed.http_timeout == 1.5
    assert cfg.dns_timeout == -1
