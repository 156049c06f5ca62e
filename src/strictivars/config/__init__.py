"""Config loading: YAML files from disk or the built-in config dir, plus `key.path=value` overrides."""

from pathlib import Path

import yaml

from strictivars.exceptions import ConfigError

builtin_config_dir = Path(__file__).resolve().parent


def get_config_path(config_spec: str | Path) -> Path:
    """Resolve a config file name or path to an existing file."""
    config_spec = Path(config_spec)
    candidates = [config_spec, builtin_config_dir / config_spec]
    if not config_spec.suffix:
        candidates.append(builtin_config_dir / config_spec.with_suffix(".yaml"))
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    raise ConfigError(f"Could not find config file for {config_spec} (tried: {[str(c) for c in candidates]})")


def _key_value_spec_to_nested_dict(config_spec: str) -> dict:
    """Turn `a.b.c=value` into `{"a": {"b": {"c": value}}}`, parsing value as YAML."""
    key, value = config_spec.split("=", 1)
    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError:
        parsed_value = value
    keys = key.strip().split(".")
    result: dict = {}
    current = result
    for k in keys[:-1]:
        current = current.setdefault(k, {})
    current[keys[-1]] = parsed_value
    return result


def get_config_from_spec(config_spec: str | Path) -> dict:
    """Load a config dict from a file path, a built-in config name, or a key=value pair."""
    if isinstance(config_spec, str) and "=" in config_spec and not Path(config_spec).exists():
        return _key_value_spec_to_nested_dict(config_spec)
    path = get_config_path(config_spec)
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data
