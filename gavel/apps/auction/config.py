"""
Auction engine configuration

Configuration is loaded from a TOML file. All sections and keys are optional:

[countdown]
interval_seconds = 1
low_time_seconds = 300

[animation]
duration_ms = 800
frame_interval_ms = 16

[bidding]
bidder = "You"
latency_ms = 0
summary_increment = 10
detail_increment = 50

[outbid_simulation]
enabled = false
interval_seconds = 30
probability = 0.3

[logging]
level = "INFO"

[logging.loggers]
BidDisplay = "WARNING"
"""
import logging
import tomllib
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any

from gavel.apps.auction.domain.model import Amount, BidderId
from gavel.core.logging import parse_level


class ConfigError(Exception):
    """
    Invalid configuration
    """


@dataclass(slots=True, frozen=True)
class CountdownConfig:
    interval: timedelta = timedelta(seconds=1)
    low_time_threshold: timedelta = timedelta(minutes=5)


@dataclass(slots=True, frozen=True)
class AnimationConfig:
    duration: timedelta = timedelta(milliseconds=800)
    # rendering cadence
    frame_interval: timedelta = timedelta(milliseconds=16)


@dataclass(slots=True, frozen=True)
class BiddingConfig:
    # the single viewer's bidder ID
    bidder: BidderId = BidderId("You")
    # simulated bid confirmation delay
    latency: timedelta = timedelta(0)
    # suggested bid = current bid + increment
    summary_increment: Amount = Amount(10)
    detail_increment: Amount = Amount(50)


@dataclass(slots=True, frozen=True)
class OutbidSimulationConfig:
    enabled: bool = False
    interval: timedelta = timedelta(seconds=30)
    # probability that an outbid notification is simulated on each interval
    probability: float = 0.3


@dataclass(slots=True, frozen=True)
class EngineConfig:
    """
    Auction engine configuration
    """

    countdown: CountdownConfig = field(default_factory=CountdownConfig)
    animation: AnimationConfig = field(default_factory=AnimationConfig)
    bidding: BiddingConfig = field(default_factory=BiddingConfig)
    outbid_simulation: OutbidSimulationConfig = field(
        default_factory=OutbidSimulationConfig
    )
    log_level: int = logging.INFO
    # logger name -> level, e.g. to quiet the high rate loggers
    logger_levels: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_config_file(cls, file: Path) -> "EngineConfig":
        """
        Constructs the config from the specified TOML config file
        """
        try:
            with open(file, "rb") as config_file:
                config = tomllib.load(config_file)
        except tomllib.TOMLDecodeError as err:
            raise ConfigError(f"invalid TOML config file: {file}") from err
        return cls.from_dict(config)

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "EngineConfig":
        """
        :exception ConfigError: if a section or key is unknown, or a value is invalid
        """
        sections = _Sections(config)

        countdown = sections.get(
            "countdown", {"interval_seconds", "low_time_seconds"}
        )
        animation = sections.get("animation", {"duration_ms", "frame_interval_ms"})
        bidding = sections.get(
            "bidding",
            {"bidder", "latency_ms", "summary_increment", "detail_increment"},
        )
        outbid = sections.get(
            "outbid_simulation", {"enabled", "interval_seconds", "probability"}
        )
        logging_section = sections.get("logging", {"level", "loggers"})
        sections.check_unknown()

        defaults = cls()
        try:
            log_level = parse_level(logging_section.get("level", defaults.log_level))
        except (ValueError, AttributeError) as err:
            raise ConfigError(f"logging.level: {err}") from err

        loggers = logging_section.get("loggers", {})
        if not isinstance(loggers, dict):
            raise ConfigError("[logging.loggers] must be a table")
        try:
            logger_levels = {
                name: parse_level(level) for name, level in loggers.items()
            }
        except (ValueError, AttributeError) as err:
            raise ConfigError(f"logging.loggers: {err}") from err

        return cls(
            countdown=CountdownConfig(
                interval=_seconds(
                    countdown, "interval_seconds", defaults.countdown.interval
                ),
                low_time_threshold=_seconds(
                    countdown,
                    "low_time_seconds",
                    defaults.countdown.low_time_threshold,
                ),
            ),
            animation=AnimationConfig(
                duration=_millis(
                    animation, "duration_ms", defaults.animation.duration
                ),
                frame_interval=_millis(
                    animation, "frame_interval_ms", defaults.animation.frame_interval
                ),
            ),
            bidding=BiddingConfig(
                bidder=BidderId(str(bidding.get("bidder", defaults.bidding.bidder))),
                latency=_millis(
                    bidding, "latency_ms", defaults.bidding.latency, allow_zero=True
                ),
                summary_increment=Amount(
                    _positive_int(
                        bidding, "summary_increment", defaults.bidding.summary_increment
                    )
                ),
                detail_increment=Amount(
                    _positive_int(
                        bidding, "detail_increment", defaults.bidding.detail_increment
                    )
                ),
            ),
            outbid_simulation=OutbidSimulationConfig(
                enabled=bool(
                    outbid.get("enabled", defaults.outbid_simulation.enabled)
                ),
                interval=_seconds(
                    outbid, "interval_seconds", defaults.outbid_simulation.interval
                ),
                probability=_probability(
                    outbid, "probability", defaults.outbid_simulation.probability
                ),
            ),
            log_level=log_level,
            logger_levels=logger_levels,
        )


class _Sections:
    def __init__(self, config: dict[str, Any]):
        self._config = config
        self._known: set[str] = set()

    def get(self, name: str, keys: set[str]) -> dict[str, Any]:
        self._known.add(name)
        section = self._config.get(name, {})
        if not isinstance(section, dict):
            raise ConfigError(f"[{name}] must be a table")
        if unknown := section.keys() - keys:
            raise ConfigError(f"[{name}] unknown keys: {sorted(unknown)}")
        return section

    def check_unknown(self):
        if unknown := self._config.keys() - self._known:
            raise ConfigError(f"unknown sections: {sorted(unknown)}")


def _number(section: dict[str, Any], key: str) -> float | None:
    value = section.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key} must be a number: {value!r}")
    return value


def _seconds(section: dict[str, Any], key: str, default: timedelta) -> timedelta:
    value = _number(section, key)
    if value is None:
        return default
    if value <= 0:
        raise ConfigError(f"{key} must be > 0: {value}")
    return timedelta(seconds=value)


def _millis(
    section: dict[str, Any],
    key: str,
    default: timedelta,
    allow_zero: bool = False,
) -> timedelta:
    value = _number(section, key)
    if value is None:
        return default
    if value < 0 or (value == 0 and not allow_zero):
        raise ConfigError(f"{key} must be {'>=' if allow_zero else '>'} 0: {value}")
    return timedelta(milliseconds=value)


def _positive_int(section: dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{key} must be a positive integer: {value!r}")
    return value


def _probability(section: dict[str, Any], key: str, default: float) -> float:
    value = _number(section, key)
    if value is None:
        return default
    if not 0 <= value <= 1:
        raise ConfigError(f"{key} must be within [0, 1]: {value}")
    return float(value)
