"""Load monitor settings from YAML.

The packaged ``defaults.yml`` is read first; an optional user file is laid
over it section by section.  Every value must end up present and positive.
"""

from dataclasses import dataclass, replace
from pathlib import Path

import yaml

DEFAULTS_PATH = Path(__file__).resolve().parent / "defaults.yml"

# (section, key) -> (MonitorConfig attribute, type)
_FIELDS = {
    ("alert", "period_seconds"): ("alert_period_seconds", int),
    ("alert", "limit_avg"): ("limit_avg", float),
    ("alert", "future_buffer_seconds"): ("future_buffer_seconds", int),
    ("stats", "period_seconds"): ("stats_period_seconds", int),
    ("stats", "top_n"): ("top_n", int),
}


@dataclass(frozen=True)
class MonitorConfig:
    alert_period_seconds: int
    limit_avg: float
    future_buffer_seconds: int
    stats_period_seconds: int
    top_n: int

    def with_overrides(self, **overrides) -> "MonitorConfig":
        """Return a copy with every non-None override applied and validated."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        updated = replace(self, **changes)
        for attr, _ in _FIELDS.values():
            _check_positive(attr, getattr(updated, attr), "overrides")
        return updated


def load_config(path: str | Path | None = None) -> MonitorConfig:
    """Read defaults.yml, overlay *path* if given, return a MonitorConfig."""
    merged = _read_yaml(DEFAULTS_PATH)
    source = DEFAULTS_PATH.name
    if path is not None:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Config file not found: {path}")
        for section, values in _read_yaml(path).items():
            if not isinstance(values, dict):
                raise ValueError(f"{path.name}: section '{section}' must be a mapping")
            merged.setdefault(section, {}).update(values)
        source = path.name
    return _parse_and_validate(merged, source)


def _read_yaml(path: Path) -> dict:
    with open(path) as f:
        definition = yaml.safe_load(f)
    if definition is None:
        return {}
    if not isinstance(definition, dict):
        raise ValueError(f"{path.name}: top level must be a mapping")
    return definition


def _parse_and_validate(definition: dict, source: str) -> MonitorConfig:
    values = {}
    for (section, key), (attr, kind) in _FIELDS.items():
        raw = definition.get(section, {}).get(key)
        if raw is None:
            raise ValueError(f"{source}: missing required field '{section}.{key}'")
        # bool is an int subclass; 'true' is never a valid period.
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise ValueError(f"{source}: '{section}.{key}' must be a number, got {raw!r}")
        if kind is int and raw != int(raw):
            raise ValueError(f"{source}: '{section}.{key}' must be a whole number, got {raw!r}")
        _check_positive(f"{section}.{key}", raw, source)
        values[attr] = kind(raw)
    return MonitorConfig(**values)


def _check_positive(name, value, source):
    if value <= 0:
        raise ValueError(f"{source}: '{name}' must be positive, got {value!r}")
