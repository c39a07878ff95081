"""Rule compilation and matching logic (core domain)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
import math
import re
from typing import Any, Iterable, List, Union

from core.errors import ConfigError
from core.models import Event, Match

# Go-style duration units accepted in remind_after values.
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


@dataclass(frozen=True)
class Rule:
    """Compiled rule used by the pipeline."""

    name: str
    pattern: re.Pattern
    delay: timedelta

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


def _seconds_to_delay(seconds: float, value: Any) -> timedelta:
    try:
        if math.isfinite(seconds):
            return timedelta(seconds=seconds)
    except (OverflowError, ValueError) as exc:
        raise ConfigError(f"duration out of range: {value!r}") from exc
    raise ConfigError(f"invalid duration: {value!r}")


def parse_duration(value: Union[str, int, float]) -> timedelta:
    """Parse a remind_after value into a non-negative timedelta.

    Strings use Go duration syntax ("90s", "1h30m", "1.5h"); bare numbers
    are seconds.
    """

    if isinstance(value, bool):
        raise ConfigError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        if value < 0:
            raise ConfigError(f"duration must not be negative: {value!r}")
        return _seconds_to_delay(value, value)
    if not isinstance(value, str):
        raise ConfigError(f"invalid duration: {value!r}")

    text = value.strip()
    if text.startswith("-"):
        raise ConfigError(f"duration must not be negative: {value!r}")
    if text.startswith("+"):
        text = text[1:]
    if text == "0":
        return timedelta(0)

    total = 0.0
    position = 0
    for part in _DURATION_PART.finditer(text):
        if part.start() != position:
            break
        total += float(part.group(1)) * _UNIT_SECONDS[part.group(2)]
        position = part.end()
    if not text or position != len(text):
        raise ConfigError(f"invalid duration: {value!r}")
    return _seconds_to_delay(total, value)


def _trim(number: float) -> str:
    return f"{number:.6f}".rstrip("0").rstrip(".")


def format_duration(delay: timedelta) -> str:
    """Render a delay compactly, e.g. 1h30m, 45s, 1.5s, 500ms, 0s."""

    micros = delay // timedelta(microseconds=1)
    hours, rest = divmod(micros, 3_600_000_000)
    minutes, rest = divmod(rest, 60_000_000)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if rest and rest < 1_000_000 and not parts:
        parts.append(f"{_trim(rest / 1000)}ms")
    elif rest or not parts:
        parts.append(f"{_trim(rest / 1_000_000)}s")
    return "".join(parts)


def build_rules(rules_config: Any) -> List[Rule]:
    """Validate rule configs and compile their patterns.

    Any bad entry rejects the whole set so the process never starts serving
    events with a partial rule list.
    """

    if not isinstance(rules_config, list):
        raise ConfigError("rules must be a list")

    compiled: List[Rule] = []
    for index, rule in enumerate(rules_config):
        if not isinstance(rule, dict):
            raise ConfigError(f"rule #{index} must be an object")
        if not rule.get("enabled", True):
            continue
        name = str(rule.get("name") or f"rule-{index}")
        raw_pattern = rule.get("pattern")
        if not isinstance(raw_pattern, str) or not raw_pattern:
            raise ConfigError(f"rule {name!r}: pattern is required")
        try:
            pattern = re.compile(raw_pattern)
        except re.error as exc:
            raise ConfigError(f"rule {name!r}: {raw_pattern!r}: {exc}") from exc
        if "remind_after" not in rule:
            raise ConfigError(f"rule {name!r}: remind_after is required")
        try:
            delay = parse_duration(rule["remind_after"])
        except ConfigError as exc:
            raise ConfigError(f"rule {name!r}: {exc}") from exc
        compiled.append(Rule(name=name, pattern=pattern, delay=delay))
    return compiled


def match_rules(event: Event, rules: Iterable[Rule]) -> List[Match]:
    """Return one match per rule whose pattern is found in the event text.

    Every rule is evaluated; a message can trigger several rules at once.
    """

    return [Match(event=event, rule=rule) for rule in rules if rule.matches(event.text)]
