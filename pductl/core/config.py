"""Device profile loading and validation for YAML-based pductl configuration."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from pductl.core.errors import ConfigLoadError, ConfigValidationError
from pductl.core.model import DeviceProfile

CONFIG_ENV = "PDUCTL_CONFIG"
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

# Keep "on"/"off"/"yes" as strings: usernames and passwords are free text.
for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedProfiles:
    profiles: dict[str, DeviceProfile]
    warnings: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("pductl.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def config_path() -> Path:
    override = os.environ.get(CONFIG_ENV)
    if override:
        return Path(override)
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "pductl/devices.yaml"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping at root")
    return loaded


def _resolve_password(name: str, spec: dict[str, Any]) -> str:
    env_name = spec.get("password_env")
    if env_name is None:
        return str(spec.get("password", ""))
    value = os.environ.get(env_name)
    if value is None:
        raise ConfigValidationError(
            f"{name}.password_env refers to unset environment variable '{env_name}'"
        )
    return value


def _build_profiles(doc: dict[str, Any], source: Path) -> dict[str, DeviceProfile]:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    profiles: dict[str, DeviceProfile] = {}
    for name, spec in doc["devices"].items():
        profiles[name] = DeviceProfile(
            name=name,
            host=spec["host"],
            port=int(spec.get("port", 60000)),
            username=spec["username"],
            password=_resolve_password(name, spec),
            timeout_s=float(spec.get("timeout_s", 5.0)),
            cooldown_s=float(spec.get("cooldown_s", 5.0)),
        )
    return profiles


def load_profiles(path: Path | None = None) -> LoadedProfiles:
    path = path or config_path()
    if not path.exists():
        LOGGER.debug("No device config found at %s", path)
        return LoadedProfiles(profiles={}, warnings=())

    doc = _read_yaml(path)
    profiles = _build_profiles(doc, path)
    LOGGER.debug("Loaded %d device profiles from %s", len(profiles), path)

    warnings: list[str] = []
    plain = sorted(name for name, spec in doc["devices"].items() if "password" in spec)
    if plain and path.stat().st_mode & 0o077:
        warning = (
            f"Config file {path} stores plain-text passwords ({', '.join(plain)}) "
            "and is readable by other users"
        )
        LOGGER.warning(warning)
        warnings.append(warning)
    return LoadedProfiles(profiles=profiles, warnings=tuple(warnings))
