import pytest

from vidgen.config import build_provider_config, env_credentials, get_registry_path, load_config
from vidgen.models import DEFAULT_ENDPOINT, ProviderConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("ARK_API_KEY", "ARK_ENDPOINT", "ARK_MODEL"):
        monkeypatch.delenv(name, raising=False)


def test_load_config_reads_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("storage:\n  registry_file: /tmp/providers.json\n", encoding="utf-8")

    assert load_config(path) == {"storage": {"registry_file": "/tmp/providers.json"}}


def test_load_config_missing_explicit_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_load_config_default_is_optional(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    assert load_config() == {}


def test_load_config_rejects_non_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(path)


def test_registry_path_precedence(tmp_path):
    config = {"storage": {"registry_file": str(tmp_path / "configured.json")}}

    assert get_registry_path(config, tmp_path / "cli.json") == tmp_path / "cli.json"
    assert get_registry_path(config) == tmp_path / "configured.json"
    assert get_registry_path({}).name == "providers.json"


def test_env_credentials(monkeypatch):
    monkeypatch.setenv("ARK_API_KEY", "sk-from-env-000")
    monkeypatch.setenv("ARK_MODEL", "seedance-lite")

    assert env_credentials() == {"api_key": "sk-from-env-000", "model": "seedance-lite"}


def test_build_provider_config_layers(monkeypatch):
    monkeypatch.setenv("ARK_API_KEY", "sk-from-env-000")
    config = {"defaults": {"video": {"resolution": "720p"}, "advanced": {"poll_interval": 5}}}

    result = build_provider_config(config, model="m-cli", video={"duration": 10, "ratio": None})

    assert isinstance(result, ProviderConfig)
    assert result.api_key == "sk-from-env-000"
    assert result.endpoint == DEFAULT_ENDPOINT
    assert result.model == "m-cli"
    assert result.video.resolution == "720p"
    assert result.video.duration == 10
    assert result.video.ratio == "16:9"
    assert result.video.watermark is False
    assert result.advanced.poll_interval == 5
    assert result.advanced.max_wait is None


def test_explicit_api_key_beats_env(monkeypatch):
    monkeypatch.setenv("ARK_API_KEY", "sk-from-env-000")

    assert build_provider_config({}, api_key="sk-explicit-000").api_key == "sk-explicit-000"


def test_provider_config_from_dict_ignores_unknown_keys():
    data = {"id": "volcengine_1", "type": "volcengine", "api_key": "k", "video": {"fps": 24, "duration": 5}}

    result = ProviderConfig.from_dict(data)

    assert result.api_key == "k"
    assert result.video.duration == 5
    assert result.endpoint == DEFAULT_ENDPOINT


def test_empty_sections_fall_back_to_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("defaults:\nstorage:\n", encoding="utf-8")
    config = load_config(path)

    assert get_registry_path(config).name == "providers.json"
    assert build_provider_config(config).video.resolution == "1080p"
