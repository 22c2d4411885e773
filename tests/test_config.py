import pytest

from imagesync.config import FailurePolicy, FilterRule, SyncConfig
from imagesync.errors import ConfigurationError


def test_sync_config_parsing(tmp_path):
    config_content = """
    source-strict-tls: true
    tags_include_pattern: "^v[0-9]+"
    tags_exclude_pattern: "-rc"
    skip_tags: [v0, v0.1]
    max_concurrent_tags: 4
    failure_policy: fail-fast
    """
    config_path = tmp_path / "imagesync.yaml"
    config_path.write_text(config_content)

    config = SyncConfig.from_yaml(config_path)

    assert config.source_strict_tls is True
    assert config.destination_strict_tls is False  # Default
    assert config.skip_tags == ["v0", "v0.1"]
    assert config.max_concurrent_tags == 4
    assert config.failure_policy == FailurePolicy.FAIL_FAST
    assert config.filter_rule == FilterRule(
        skip_tags=["v0", "v0.1"], include_pattern="^v[0-9]+", exclude_pattern="-rc"
    )


def test_overrides_win_over_file(tmp_path):
    config_path = tmp_path / "imagesync.yaml"
    config_path.write_text("max_concurrent_tags: 4\noverwrite: true\n")

    config = SyncConfig.from_yaml(config_path, max_concurrent_tags=2)

    assert config.max_concurrent_tags == 2
    assert config.overwrite is True


def test_defaults():
    config = SyncConfig()
    assert config.max_concurrent_tags == 1
    assert config.failure_policy == FailurePolicy.BEST_EFFORT
    assert config.skip_tags == []
    assert config.filter_rule == FilterRule()


def test_skip_tags_from_comma_separated_string():
    config = SyncConfig.build({"skip_tags": "a, b,,c"})
    assert config.skip_tags == ["a", "b", "c"]


def test_empty_patterns_mean_no_filter():
    config = SyncConfig.build({"tags_include_pattern": ""})
    assert config.tags_include_pattern is None


@pytest.mark.parametrize(
    "data",
    [
        {"max_concurrent_tags": 0},
        {"max_concurrent_tags": -1},
        {"tags_include_pattern": "("},
        {"tags_exclude_pattern": "[a-"},
        {"failure_policy": "sometimes"},
        {"unknown_option": True},
    ],
)
def test_invalid_config(data):
    with pytest.raises(ConfigurationError):
        SyncConfig.build(data)


def test_config_file_must_be_mapping(tmp_path):
    config_path = tmp_path / "list.yaml"
    config_path.write_text("- a\n- b\n")
    with pytest.raises(ConfigurationError):
        SyncConfig.from_yaml(config_path)


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigurationError):
        SyncConfig.from_yaml(tmp_path / "absent.yaml")
