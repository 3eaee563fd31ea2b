import pytest
import yaml
from pathlib import Path

from subwatch.models.config import AppConfig, SchedulerSettings
from subwatch.services.config_manager import ConfigManager, ConfigValidationError


@pytest.fixture
def valid_config_file(tmp_path):
    config_content = {
        "dedup": {"service_name_similarity_threshold": 0.9, "time_window_days": 3},
        "scheduler": {"sweep_interval_seconds": 30, "max_retry_count": 5},
        "storage": {"notifications_path": str(tmp_path / "notifications.json")},
        "delivery": {"method": "log"},
        "logging": {"level": "DEBUG", "json_output": False},
    }
    config_file = tmp_path / "subwatch.yaml"
    with open(config_file, "w") as f:
        yaml.dump(config_content, f)
    return config_file


def test_load_valid_config(valid_config_file, tmp_path):
    manager = ConfigManager(config_path=str(valid_config_file), load_env=False)

    config = manager.load_config()

    assert config.dedup.service_name_similarity_threshold == 0.9
    assert config.dedup.amount_similarity_threshold == 5.0
    assert config.scheduler.sweep_interval_seconds == 30
    assert config.scheduler.max_retry_count == 5
    assert config.storage.notifications_path == tmp_path / "notifications.json"
    assert config.logging.level == "DEBUG"


def test_config_is_cached(valid_config_file):
    manager = ConfigManager(config_path=str(valid_config_file), load_env=False)

    assert manager.load_config() is manager.load_config()


def test_load_missing_config():
    manager = ConfigManager(config_path="nonexistent.yaml", load_env=False)
    with pytest.raises(FileNotFoundError):
        manager.load_config()


def test_load_or_default_missing_file():
    manager = ConfigManager(config_path="nonexistent.yaml", load_env=False)

    config = manager.load_or_default()

    assert config == AppConfig()
    assert config.scheduler.max_retry_count == 3
    assert config.delivery.method == "log"


def test_empty_file_uses_defaults(tmp_path):
    config_file = tmp_path / "empty.yaml"
    config_file.write_text("")

    config = ConfigManager(str(config_file), load_env=False).load_config()

    assert config == AppConfig()


def test_invalid_yaml(tmp_path):
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("scheduler: [unclosed")

    with pytest.raises(ConfigValidationError):
        ConfigManager(str(config_file), load_env=False).load_config()


def test_root_must_be_mapping(tmp_path):
    config_file = tmp_path / "list.yaml"
    config_file.write_text("- a\n- b\n")

    with pytest.raises(ConfigValidationError, match="mapping"):
        ConfigManager(str(config_file), load_env=False).load_config()


def test_invalid_values(tmp_path):
    config_file = tmp_path / "bad.yaml"
    config_file.write_text("scheduler:\n  sweep_interval_seconds: 0\n")

    with pytest.raises(ConfigValidationError, match="Invalid configuration"):
        ConfigManager(str(config_file), load_env=False).load_config()


def test_env_substitution(tmp_path, monkeypatch):
    monkeypatch.setenv("SUBWATCH_WEBHOOK_URL", "https://hooks.example.com/notify")
    config_file = tmp_path / "webhook.yaml"
    config_file.write_text(
        "delivery:\n  method: webhook\n  webhook_url: ${SUBWATCH_WEBHOOK_URL}\n"
    )

    config = ConfigManager(str(config_file), load_env=False).load_config()

    assert str(config.delivery.webhook_url) == "https://hooks.example.com/notify"


def test_unset_webhook_variable_is_none(tmp_path, monkeypatch):
    monkeypatch.delenv("SUBWATCH_WEBHOOK_URL", raising=False)
    config_file = tmp_path / "log.yaml"
    config_file.write_text("delivery:\n  webhook_url: ${SUBWATCH_WEBHOOK_URL}\n")

    config = ConfigManager(str(config_file), load_env=False).load_config()

    assert config.delivery.webhook_url is None


def test_webhook_method_requires_url(tmp_path, monkeypatch):
    monkeypatch.delenv("SUBWATCH_WEBHOOK_URL", raising=False)
    config_file = tmp_path / "webhook.yaml"
    config_file.write_text(
        "delivery:\n  method: webhook\n  webhook_url: ${SUBWATCH_WEBHOOK_URL}\n"
    )

    with pytest.raises(ConfigValidationError, match="webhook_url"):
        ConfigManager(str(config_file), load_env=False).load_config()


def test_shipped_config_is_valid(monkeypatch):
    monkeypatch.delenv("SUBWATCH_WEBHOOK_URL", raising=False)
    shipped = Path(__file__).resolve().parents[2] / "config" / "subwatch.yaml"

    config = ConfigManager(str(shipped), load_env=False).load_config()

    assert config.scheduler.sweep_interval_seconds == 60
    assert config.storage.notifications_path == Path("data/notifications.json")


def test_backoff_minutes():
    settings = SchedulerSettings()

    assert [settings.backoff_minutes(n) for n in (1, 2, 3)] == [2, 4, 8]
