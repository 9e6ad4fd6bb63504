"""Configuration management for the timer trigger service."""
from __future__ import annotations

import json
import re
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .constants import GROUPED_MODES, MODE_SCHEDULE_STEPS, MODE_SINGLE_EPC, SUPPORTED_MODES
from .durations import parse_duration


class ConfigError(ValueError):
    """Raised when the merged configuration cannot drive a run."""


class UnsupportedModeError(ConfigError):
    """Raised when the mode is outside 1-4."""


class IndexOutOfRangeError(ConfigError):
    """Raised when ``single_epc_index`` does not address an entry of ``epc_list``."""


_INT_FIELDS = (
    'interval_min',
    'mode',
    'single_epc_index',
    'device_id',
    'device_port',
    'duration_sec',
    'qvalue',
    'rfmode',
    'epc_interval_sec',
    'connect_timeout_sec',
    'request_timeout_sec',
)
_STR_FIELDS = ('run_for', 'base_url', 'single_epc', 'shutdown_wait', 'log_dir')

_KEY_ALIASES = {
    'qValue': 'qvalue',
    'q_value': 'qvalue',
    'rfMode': 'rfmode',
    'rf_mode': 'rfmode',
}

_CAMEL_BOUNDARY = re.compile(r'(?<!^)(?=[A-Z])')


def _field_name(key: str) -> str:
    if key in _KEY_ALIASES:
        return _KEY_ALIASES[key]
    return _CAMEL_BOUNDARY.sub('_', key.replace('-', '_')).lower()


def _coerce_int(value: Any, label: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"{label} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{label} must be an integer, got {value!r}") from None


def _coerce_epcs(value: Any, label: str) -> Optional[Tuple[str, ...]]:
    """Return *value* as a tuple of trimmed EPC strings, dropping blanks."""

    if value is None:
        return None
    if isinstance(value, str):
        items: Any = value.split(',')
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        raise ConfigError(f"{label} must be a list or a comma-separated string")
    return tuple(str(item).strip() for item in items if item is not None and str(item).strip())


def _is_set(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (tuple, list)):
        return bool(value)
    return True


@dataclass(frozen=True, slots=True)
class ScheduleStep:
    """One (device port, EPC list) unit cycled through by mode 4."""

    device_port: int
    epc_list: Tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, 'epc_list', _coerce_epcs(self.epc_list, 'epcList') or ())

    @classmethod
    def from_mapping(cls, payload: Any, index: int) -> "ScheduleStep":
        label = f"scheduleSteps[{index}]"
        if payload is None:
            raise ConfigError(f"{label} is null")
        if isinstance(payload, ScheduleStep):
            return payload
        if not isinstance(payload, Mapping):
            raise ConfigError(f"{label} must be a mapping, got {type(payload).__name__}")
        values = {_field_name(str(key)): value for key, value in payload.items()}
        port = _coerce_int(values.get('device_port'), f"{label}.devicePort")
        if port is None:
            raise ConfigError(f"{label}.devicePort is required")
        epcs = _coerce_epcs(values.get('epc_list'), f"{label}.epcList")
        if not epcs:
            raise ConfigError(f"{label}.epcList is required")
        return cls(device_port=port, epc_list=epcs)

    def to_dict(self) -> Dict[str, Any]:
        return {'devicePort': self.device_port, 'epcList': list(self.epc_list)}


@dataclass(slots=True)
class ConfigLayer:
    """One configuration source; ``None`` marks a field the source leaves unset."""

    interval_min: Optional[int] = None
    run_for: Optional[str] = None
    mode: Optional[int] = None
    base_url: Optional[str] = None
    epc_list: Optional[Tuple[str, ...]] = None
    single_epc: Optional[str] = None
    single_epc_index: Optional[int] = None
    schedule_steps: Optional[Tuple[ScheduleStep, ...]] = None
    device_id: Optional[int] = None
    device_port: Optional[int] = None
    duration_sec: Optional[int] = None
    qvalue: Optional[int] = None
    rfmode: Optional[int] = None
    epc_interval_sec: Optional[int] = None
    connect_timeout_sec: Optional[int] = None
    request_timeout_sec: Optional[int] = None
    shutdown_wait: Optional[str] = None
    log_dir: Optional[str] = None

    def __post_init__(self) -> None:
        self.epc_list = _coerce_epcs(self.epc_list, 'epcList')
        if self.schedule_steps is not None:
            if not isinstance(self.schedule_steps, (list, tuple)):
                raise ConfigError('scheduleSteps must be a list')
            self.schedule_steps = tuple(
                ScheduleStep.from_mapping(entry, index) for index, entry in enumerate(self.schedule_steps)
            )

    @classmethod
    def from_mapping(cls, payload: Optional[Mapping[str, Any]]) -> "ConfigLayer":
        """Build a layer from a file payload using camelCase or snake_case keys."""

        if not payload:
            return cls()
        values: Dict[str, Any] = {}
        for key, value in payload.items():
            name = _field_name(str(key))
            if name not in LAYER_FIELDS:
                raise ConfigError(f"Unknown configuration key: {key}")
            if name in _INT_FIELDS:
                value = _coerce_int(value, str(key))
            elif name in _STR_FIELDS and value is not None:
                value = str(value)
            values[name] = value
        return cls(**values)


LAYER_FIELDS = tuple(item.name for item in fields(ConfigLayer))

DEFAULT_LAYER = ConfigLayer(
    base_url='http://localhost:9055',
    device_id=1,
    device_port=0,
    duration_sec=60,
    qvalue=0,
    rfmode=113,
    connect_timeout_sec=5,
    request_timeout_sec=30,
    shutdown_wait='30s',
    log_dir='logs',
)


def merge_layers(*layers: ConfigLayer) -> ConfigLayer:
    """Fold *layers* left to right; per field the last set value wins."""

    merged = ConfigLayer()
    for layer in layers:
        for name in LAYER_FIELDS:
            value = getattr(layer, name)
            if _is_set(value):
                setattr(merged, name, value)
    return merged


@dataclass(frozen=True, slots=True)
class TriggerConfig:
    """Fully validated parameters for one scheduler run."""

    mode: int
    interval_min: int
    run_for: str
    base_url: str
    epc_list: Tuple[str, ...] = ()
    single_epc: Optional[str] = None
    single_epc_index: int = 0
    schedule_steps: Tuple[ScheduleStep, ...] = ()
    device_id: int = 1
    device_port: int = 0
    duration_sec: int = 60
    qvalue: int = 0
    rfmode: int = 113
    epc_interval_sec: Optional[int] = None
    connect_timeout_sec: int = 5
    request_timeout_sec: int = 30
    shutdown_wait: str = '30s'
    log_dir: str = 'logs'
    interval_s: float = field(init=False)
    run_for_s: float = field(init=False)
    epc_interval_s: Optional[float] = field(init=False)
    shutdown_wait_s: float = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, 'epc_list', tuple(self.epc_list))
        object.__setattr__(self, 'schedule_steps', tuple(self.schedule_steps))
        object.__setattr__(self, 'interval_s', float(self.interval_min) * 60.0)
        object.__setattr__(self, 'run_for_s', parse_duration(self.run_for).total_seconds())
        epc_interval_s = None if self.epc_interval_sec is None else float(self.epc_interval_sec)
        object.__setattr__(self, 'epc_interval_s', epc_interval_s)
        object.__setattr__(self, 'shutdown_wait_s', parse_duration(self.shutdown_wait).total_seconds())

    @property
    def intra_group_s(self) -> float:
        """Delay between tags of one group; falls back to the round interval."""

        if self.epc_interval_s is None:
            return self.interval_s
        return self.epc_interval_s

    def to_dict(self) -> Dict[str, Any]:
        return {
            'mode': self.mode,
            'intervalMin': self.interval_min,
            'runFor': self.run_for,
            'baseUrl': self.base_url,
            'epcList': list(self.epc_list),
            'singleEpc': self.single_epc,
            'singleEpcIndex': self.single_epc_index,
            'scheduleSteps': [step.to_dict() for step in self.schedule_steps],
            'deviceId': self.device_id,
            'devicePort': self.device_port,
            'durationSec': self.duration_sec,
            'qvalue': self.qvalue,
            'rfmode': self.rfmode,
            'epcIntervalSec': self.epc_interval_sec,
            'connectTimeoutSec': self.connect_timeout_sec,
            'requestTimeoutSec': self.request_timeout_sec,
            'shutdownWait': self.shutdown_wait,
            'logDir': self.log_dir,
        }


def _check_duration(value: Optional[str], label: str) -> str:
    if not _is_set(value):
        raise ConfigError(f"{label} is required")
    try:
        parse_duration(value)  # type: ignore[arg-type]
    except ValueError as exc:
        raise ConfigError(f"{label}: {exc}") from exc
    return str(value).strip()


def _check_port(port: Optional[int], label: str) -> None:
    if port is None or port < 0:
        raise ConfigError(f"{label} must be >= 0")


def validate_layer(layer: ConfigLayer) -> None:
    """Raise :class:`ConfigError` unless *layer* can drive a scheduler run."""

    if layer.interval_min is None or layer.interval_min <= 0:
        raise ConfigError('interval-min must be > 0')
    if layer.mode is None:
        raise ConfigError('mode is required')
    if layer.mode not in SUPPORTED_MODES:
        raise UnsupportedModeError('mode must be between 1 and 4')
    _check_duration(layer.run_for, 'run-for')
    if not _is_set(layer.base_url):
        raise ConfigError('base-url is required')
    if layer.mode != MODE_SCHEDULE_STEPS:
        if not layer.epc_list:
            raise ConfigError('epc-list must not be empty')
        if layer.mode == MODE_SINGLE_EPC and not _is_set(layer.single_epc):
            index = 0 if layer.single_epc_index is None else layer.single_epc_index
            if index < 0 or index >= len(layer.epc_list):
                raise IndexOutOfRangeError(f"single-epc-index out of range: {index}")
    _check_port(layer.device_port, 'devicePort')
    if layer.mode == MODE_SCHEDULE_STEPS:
        if not layer.schedule_steps:
            raise ConfigError('mode 4 requires scheduleSteps in config')
        for index, step in enumerate(layer.schedule_steps):
            _check_port(step.device_port, f"scheduleSteps[{index}].devicePort")
            if not step.epc_list:
                raise ConfigError(f"scheduleSteps[{index}].epcList is required")
    if layer.mode in GROUPED_MODES:
        if layer.epc_interval_sec is None or layer.epc_interval_sec <= 0:
            raise ConfigError('epc-interval-sec must be > 0 for mode 2/4')
    for name, label in (('connect_timeout_sec', 'connect-timeout-sec'), ('request_timeout_sec', 'request-timeout-sec')):
        value = getattr(layer, name)
        if value is None or value <= 0:
            raise ConfigError(f"{label} must be > 0")
    _check_duration(layer.shutdown_wait, 'shutdown-wait')


def resolve_config(*layers: ConfigLayer) -> TriggerConfig:
    """Merge defaults with *layers* (lowest precedence first) and validate."""

    merged = merge_layers(DEFAULT_LAYER, *layers)
    validate_layer(merged)
    single_epc = merged.single_epc.strip() if _is_set(merged.single_epc) else None
    return TriggerConfig(
        mode=merged.mode,  # type: ignore[arg-type]
        interval_min=merged.interval_min,  # type: ignore[arg-type]
        run_for=merged.run_for.strip(),  # type: ignore[union-attr]
        base_url=merged.base_url.strip(),  # type: ignore[union-attr]
        epc_list=merged.epc_list or (),
        single_epc=single_epc,
        single_epc_index=merged.single_epc_index or 0,
        schedule_steps=merged.schedule_steps or (),
        device_id=merged.device_id,  # type: ignore[arg-type]
        device_port=merged.device_port,  # type: ignore[arg-type]
        duration_sec=merged.duration_sec,  # type: ignore[arg-type]
        qvalue=merged.qvalue,  # type: ignore[arg-type]
        rfmode=merged.rfmode,  # type: ignore[arg-type]
        epc_interval_sec=merged.epc_interval_sec,
        connect_timeout_sec=merged.connect_timeout_sec,  # type: ignore[arg-type]
        request_timeout_sec=merged.request_timeout_sec,  # type: ignore[arg-type]
        shutdown_wait=merged.shutdown_wait.strip(),  # type: ignore[union-attr]
        log_dir=merged.log_dir or 'logs',
    )


def load_config_layer(path: Path) -> ConfigLayer:
    """Read one configuration file into a :class:`ConfigLayer`."""

    resolved = Path(path).expanduser()
    suffix = resolved.suffix.lower()
    try:
        if suffix in {".json", ".jsn"}:
            payload = _load_json(resolved)
        elif suffix in {".toml", ".tml"}:
            payload = _load_toml(resolved)
        elif suffix in {".yaml", ".yml"}:
            payload = _load_yaml(resolved)
        else:
            raise ConfigError(f"Unsupported configuration format: {resolved.suffix}")
    except OSError as exc:
        raise ConfigError(f"Failed to read config: {exc}") from exc
    except (json.JSONDecodeError, tomllib.TOMLDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to parse config {resolved}: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise ConfigError(f"Expected a mapping at the top of {resolved}, got {type(payload).__name__}")
    return ConfigLayer.from_mapping(payload)


def _load_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _load_toml(path: Path) -> Any:
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _load_yaml(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}
