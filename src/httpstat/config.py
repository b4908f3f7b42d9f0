"""Configuration management for httpstat."""

import time
import tomllib
from enum import Enum
from pathlib import Path

import tomli_w
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError
from .result import Clock, Result

CONFIG_FILE = "httpstat.toml"


class ClockSource(str, Enum):
    """Monotonic clocks a result can stamp timestamps with."""

    PERF_COUNTER = "perf_counter"
    MONOTONIC = "monotonic"


_CLOCKS: dict[ClockSource, Clock] = {
    ClockSource.PERF_COUNTER: time.perf_counter_ns,
    ClockSource.MONOTONIC: time.monotonic_ns,
}


class ClockConfig(BaseModel):
    """Clock used for phase timestamps."""

    source: ClockSource = Field(
        default=ClockSource.PERF_COUNTER, description="Nanosecond clock for timestamps"
    )

    def get_clock(self) -> Clock:
        """Return the clock function for the configured source."""
        return _CLOCKS[self.source]


class HttpxConfig(BaseModel):
    """Settings for the httpx trace adapter."""

    infer_reuse: bool = Field(
        default=True,
        description="Treat requests sent without a preceding connect as pooled",
    )


class HttpstatConfig(BaseModel):
    """Root configuration for httpstat."""

    clock: ClockConfig = Field(default_factory=ClockConfig)
    httpx: HttpxConfig = Field(default_factory=HttpxConfig)

    def new_result(self) -> Result:
        """Create a fresh result stamped with the configured clock."""
        return Result(clock=self.clock.get_clock())


def load_config(config_dir: Path) -> HttpstatConfig:
    """Load config from httpstat.toml.

    Args:
        config_dir: Directory containing httpstat.toml

    Returns:
        Loaded configuration, or defaults if httpstat.toml doesn't exist

    Raises:
        ConfigError: If the file is not valid TOML or fails validation
    """
    config_path = config_dir / CONFIG_FILE
    if not config_path.exists():
        return HttpstatConfig()
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
        return HttpstatConfig.model_validate(data)
    except (tomllib.TOMLDecodeError, ValidationError) as e:
        raise ConfigError(f"Invalid config {config_path}: {e}") from e


def write_config_template(config_dir: Path) -> Path:
    """Write default httpstat.toml template.

    Args:
        config_dir: Directory to write httpstat.toml into

    Returns:
        Path to the written config file
    """
    config_path = config_dir / CONFIG_FILE
    template = {
        "clock": {"source": ClockSource.PERF_COUNTER.value},
        "httpx": {"infer_reuse": True},
    }
    with open(config_path, "wb") as f:
        tomli_w.dump(template, f)
    return config_path
