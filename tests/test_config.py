import pytest

from crust_data import (
    ConfigurationError,
    CrustData,
    CrustDataConfig,
    build_backend,
    load_config,
)
from crust_data.backends.memory import InMemoryTableBackend


def test_defaults():
    config = CrustDataConfig.from_env({})

    assert config.backend == "azure"
    assert config.connection_string is None
    assert config.table_name == "crusts"
    assert config.retry_attempts == 100


def test_from_env_reads_prefixed_variables():
    config = CrustDataConfig.from_env(
        {
            "CRUST_DATA_BACKEND": "memory",
            "CRUST_DATA_TABLE_NAME": "crusts_test",
            "CRUST_DATA_RETRY_ATTEMPTS": "7",
            "UNRELATED": "ignored",
        }
    )

    assert config == CrustDataConfig(
        backend="memory", table_name="crusts_test", retry_attempts=7
    )


def test_unknown_backend_is_rejected():
    with pytest.raises(ConfigurationError):
        CrustDataConfig.from_mapping({"BACKEND": "sqlite"})


def test_non_integer_retry_attempts_is_rejected():
    with pytest.raises(ConfigurationError):
        CrustDataConfig.from_mapping({"RETRY_ATTEMPTS": "lots"})


def test_azure_backend_requires_connection_string():
    with pytest.raises(ConfigurationError):
        build_backend(CrustDataConfig(backend="azure"))


def test_memory_backend_is_built():
    assert isinstance(build_backend(CrustDataConfig(backend="memory")), InMemoryTableBackend)


def test_crust_data_uses_loaded_config(monkeypatch):
    monkeypatch.setattr(
        "crust_data.api.load_config",
        lambda: CrustDataConfig(backend="memory", retry_attempts=3),
    )

    crusts = CrustData()

    assert crusts.retry_attempts == 3
    assert len(crusts.list()) == 9


def test_explicit_retry_attempts_wins(monkeypatch):
    monkeypatch.setattr(
        "crust_data.api.load_config",
        lambda: CrustDataConfig(backend="memory", retry_attempts=3),
    )

    assert CrustData(retry_attempts=12).retry_attempts == 12


class FakeSettings:
    configured = True
    CRUST_DATA = {"BACKEND": "memory", "RETRY_ATTEMPTS": 9}


def test_load_config_prefers_django_settings(monkeypatch):
    monkeypatch.setattr("django.conf.settings", FakeSettings())
    monkeypatch.setenv("CRUST_DATA_BACKEND", "postgres")

    config = load_config()

    assert config.backend == "memory"
    assert config.retry_attempts == 9


def test_load_config_falls_back_to_environment(monkeypatch):
    class Unconfigured:
        configured = False

    monkeypatch.setattr("django.conf.settings", Unconfigured())
    monkeypatch.setenv("CRUST_DATA_BACKEND", "memory")
    monkeypatch.setenv("CRUST_DATA_RETRY_ATTEMPTS", "4")

    config = load_config()

    assert config.backend == "memory"
    assert config.retry_attempts == 4
