"""Tests for configuration loading"""

import logging

import pytest
import yaml

from todosync.config import ConfigManager, TodoSyncConfig, build_client
from todosync.fake_client import InMemoryTodoClient
from todosync.remote_client import HttpTodoClient


def write_config(config_dir, data):
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / ConfigManager.CONFIG_FILE_NAME).write_text(yaml.dump(data))


def test_missing_file_gives_defaults(tmp_path):
    config = ConfigManager(tmp_path).load_config(environ={})

    assert config == TodoSyncConfig()
    assert config.sync_interval_seconds == 60


def test_yaml_values_are_loaded(tmp_path):
    write_config(tmp_path, {"base_url": "https://todos.example.com", "sync_interval_seconds": 120})

    config = ConfigManager(tmp_path).load_config(environ={})

    assert config.base_url == "https://todos.example.com"
    assert config.sync_interval_seconds == 120


def test_environment_overrides_file(tmp_path):
    write_config(tmp_path, {"base_url": "https://file.example.com", "use_fake": False})

    config = ConfigManager(tmp_path).load_config(environ={
        "TODOSYNC_BASE_URL": "https://env.example.com",
        "TODOSYNC_USE_FAKE": "true",
        "TODOSYNC_SYNC_INTERVAL_SECONDS": "30",
    })

    assert config.base_url == "https://env.example.com"
    assert config.use_fake is True
    assert config.sync_interval_seconds == 30


def test_unknown_keys_are_ignored_with_warning(tmp_path, caplog):
    write_config(tmp_path, {"api_token": "secret"})

    with caplog.at_level(logging.WARNING, logger="todosync.config"):
        config = ConfigManager(tmp_path).load_config(environ={})

    assert config == TodoSyncConfig()
    assert "api_token" in caplog.text


def test_invalid_values_are_reported_together(tmp_path):
    write_config(tmp_path, {"sync_interval_seconds": 0, "logging_level": "LOUD"})

    with pytest.raises(ValueError) as excinfo:
        ConfigManager(tmp_path).load_config(environ={})

    message = str(excinfo.value)
    assert "sync_interval_seconds" in message
    assert "logging_level" in message


def test_bad_environment_value(tmp_path):
    with pytest.raises(ValueError, match="TODOSYNC_TIMEOUT_SECONDS"):
        ConfigManager(tmp_path).load_config(environ={"TODOSYNC_TIMEOUT_SECONDS": "soon"})


def test_invalid_yaml(tmp_path):
    (tmp_path / ConfigManager.CONFIG_FILE_NAME).write_text("base_url: [unclosed")

    with pytest.raises(ValueError, match="Invalid YAML"):
        ConfigManager(tmp_path).load_config(environ={})


def test_save_then_load(tmp_path):
    manager = ConfigManager(tmp_path / "nested")
    manager.save_config(TodoSyncConfig(base_url="https://todos.example.com", timeout_seconds=7))

    assert manager.config_exists()
    config = manager.load_config(environ={})
    assert config.base_url == "https://todos.example.com"
    assert config.timeout_seconds == 7


def test_resource_paths_are_relative_to_config_dir(tmp_path):
    manager = ConfigManager(tmp_path)

    assert manager.get_resource_path("todosync.db") == tmp_path / "todosync.db"
    assert manager.get_resource_path(str(tmp_path / "abs.db")) == tmp_path / "abs.db"


def test_build_client():
    assert isinstance(build_client(TodoSyncConfig(use_fake=True)), InMemoryTodoClient)

    client = build_client(TodoSyncConfig(base_url="https://todos.example.com/", timeout_seconds=9))
    assert isinstance(client, HttpTodoClient)
    assert client.base_url == "https://todos.example.com"
    assert client.timeout_seconds == 9
