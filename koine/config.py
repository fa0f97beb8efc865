"""Configuration helpers: data directory discovery, settings, scheduler tuning."""

import math
import os
import pathlib
import sys
from dataclasses import dataclass, field

from koine.errors import ValidationError
from koine.models import CARD_TYPES, LEECH_THRESHOLD

DEFAULT_SETTINGS = {
    "new_cards_per_day": 20,
    "interleave_ratio": {"vocab": 0.6, "grammar": 0.3, "verse": 0.1},
    "learning_steps": [1, 10],
    "ease_floor": 1.3,
    "max_interval_days": 365,
    "leech_threshold": LEECH_THRESHOLD,
    "tick_seconds": 1,
}

RATIO_TOLERANCE = 0.05


@dataclass
class Settings:
    new_cards_per_day: int = 20
    interleave_ratio: dict = field(
        default_factory=lambda: dict(DEFAULT_SETTINGS["interleave_ratio"]))

    def ratio(self, card_type: str) -> float:
        return float(self.interleave_ratio.get(card_type, 0.0))

    def validate(self):
        if isinstance(self.new_cards_per_day, bool) or not isinstance(self.new_cards_per_day, int):
            raise ValidationError(
                f"new_cards_per_day must be an integer, got {self.new_cards_per_day!r}")
        if self.new_cards_per_day <= 0:
            raise ValidationError(
                f"new_cards_per_day must be positive, got {self.new_cards_per_day}")
        unknown = set(self.interleave_ratio) - set(CARD_TYPES)
        if unknown:
            raise ValidationError(f"Unknown card types in interleave_ratio: {sorted(unknown)}")
        total = 0.0
        for card_type, value in self.interleave_ratio.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
                raise ValidationError(f"interleave_ratio[{card_type}] must be a number")
            if value < 0:
                raise ValidationError(f"interleave_ratio[{card_type}] is negative: {value}")
            total += value
        if abs(total - 1.0) > RATIO_TOLERANCE:
            raise ValidationError(f"interleave_ratio must sum to 1.0, got {total:.3f}")


@dataclass(frozen=True)
class SchedulerConfig:
    learning_steps: tuple = (1, 10)  # minutes
    graduating_interval: int = 1
    easy_interval: int = 4
    ease_floor: float = 1.3
    max_interval_days: int = 365
    leech_threshold: int = LEECH_THRESHOLD
    hard_multiplier: float = 1.2
    easy_bonus: float = 1.3

    def validate(self):
        if not self.learning_steps:
            raise ValidationError("learning_steps must not be empty")
        if any(s <= 0 for s in self.learning_steps):
            raise ValidationError(f"learning_steps must be positive: {list(self.learning_steps)}")
        if self.ease_floor <= 1.0:
            raise ValidationError(f"ease_floor must be above 1.0, got {self.ease_floor}")
        if self.max_interval_days < 1:
            raise ValidationError("max_interval_days must be at least 1")
        if self.leech_threshold < 1:
            raise ValidationError("leech_threshold must be at least 1")


DEFAULT_CONFIG = SchedulerConfig()


def get_data_dir() -> pathlib.Path:
    env = os.environ.get("KOINE_DIR")
    if env:
        return pathlib.Path(env).expanduser()
    config_path = pathlib.Path.home() / ".config" / "koine" / "config"
    if config_path.exists():
        for line in config_path.read_text().splitlines():
            line = line.strip()
            if line.startswith("DIR="):
                return pathlib.Path(line[4:].strip()).expanduser()
    return pathlib.Path.home() / ".local" / "share" / "koine"


def load_settings(data_dir: pathlib.Path) -> dict:
    settings_path = data_dir / "settings.toml"
    settings = {k: (dict(v) if isinstance(v, dict) else v) for k, v in DEFAULT_SETTINGS.items()}
    if settings_path.exists():
        for k, v in _parse_toml_simple(settings_path.read_text()).items():
            if isinstance(v, dict) and isinstance(settings.get(k), dict):
                settings[k].update(v)
            else:
                settings[k] = v
    return settings


def settings_from_dict(values: dict) -> Settings:
    settings = Settings(
        new_cards_per_day=values.get("new_cards_per_day", DEFAULT_SETTINGS["new_cards_per_day"]),
        interleave_ratio=dict(values.get("interleave_ratio", DEFAULT_SETTINGS["interleave_ratio"])),
    )
    settings.validate()
    return settings


def scheduler_config_from_dict(values: dict) -> SchedulerConfig:
    steps = values.get("learning_steps", DEFAULT_SETTINGS["learning_steps"])
    if not isinstance(steps, (list, tuple)):
        steps = [steps]
    try:
        config = SchedulerConfig(
            learning_steps=tuple(int(s) for s in steps),
            ease_floor=float(values.get("ease_floor", DEFAULT_SETTINGS["ease_floor"])),
            max_interval_days=int(values.get("max_interval_days",
                                             DEFAULT_SETTINGS["max_interval_days"])),
            leech_threshold=int(values.get("leech_threshold", DEFAULT_SETTINGS["leech_threshold"])),
        )
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid scheduler settings: {e}") from e
    config.validate()
    return config


def _parse_toml_simple(text: str) -> dict:
    """Minimal TOML parser: key=value lines, [section] tables, flat lists."""
    result: dict = {}
    table = result
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("[") and line.endswith("]") and "=" not in line:
            name = line[1:-1].strip()
            table = result.setdefault(name, {})
            continue
        if "=" in line:
            k, v = line.split("=", 1)
            k = k.strip()
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                table[k] = [_parse_scalar(x.strip()) for x in v[1:-1].split(",") if x.strip()]
            else:
                table[k] = _parse_scalar(v)
        else:
            print(f"Warning: ignoring settings line: {line}", file=sys.stderr)
    return result


def _parse_scalar(v: str):
    if v.startswith('"') and v.endswith('"'):
        return v[1:-1]
    if v == "true":
        return True
    if v == "false":
        return False
    if v.lstrip("-").isdigit():
        return int(v)
    try:
        return float(v)
    except ValueError:
        return v
