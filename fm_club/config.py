"""Simulation configuration for FM Club.

Supports loading tunable simulation parameters from YAML files.
"""

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

import yaml

from fm_club.core.config import CONFIG_DIR


@dataclass
class EconomyConfig:
    """Tunable economy constants."""
    # (minimum reputation, debt threshold) pairs, highest first
    retention_thresholds: list[tuple[float, float]] = field(default_factory=lambda: [
        (4.5, 800.0),
        (4.0, 500.0),
        (3.5, 100.0),
        (3.0, 20.0),
        (2.0, 5.0),
    ])
    retention_default_threshold: float = 3.0
    objective_bonus: int = 5
    monthly_fixed_expense: float = 0.35
    daily_admin_cost: float = 0.05 / 30

    @classmethod
    def from_dict(cls, data: dict) -> "EconomyConfig":
        config = cls()
        thresholds = data.get("retention_thresholds")
        if thresholds:
            config.retention_thresholds = [
                (float(rep), float(limit)) for rep, limit in thresholds
            ]
        config.retention_default_threshold = data.get(
            "retention_default_threshold", config.retention_default_threshold
        )
        config.objective_bonus = data.get("objective_bonus", config.objective_bonus)
        config.monthly_fixed_expense = data.get(
            "monthly_fixed_expense", config.monthly_fixed_expense
        )
        config.daily_admin_cost = data.get("daily_admin_cost", config.daily_admin_cost)
        return config


@dataclass
class SimulationConfig:
    """World generation and simulation settings."""
    start_date: date = date(2025, 7, 1)
    top_flight_teams: int = 18
    second_division_teams: int = 18
    foreign_teams: int = 31
    squad_size: int = 30
    market_size: int = 200
    market_refill_threshold: int = 30
    market_refill_batch: int = 20
    min_squad_size: int = 22
    economy: EconomyConfig = field(default_factory=EconomyConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "SimulationConfig":
        """Create config from dictionary."""
        config = cls()

        world = data.get("world", {})
        start = world.get("start_date")
        if start:
            config.start_date = start if isinstance(start, date) else date.fromisoformat(str(start))
        config.top_flight_teams = world.get("top_flight_teams", config.top_flight_teams)
        config.second_division_teams = world.get(
            "second_division_teams", config.second_division_teams
        )
        config.foreign_teams = world.get("foreign_teams", config.foreign_teams)
        config.squad_size = world.get("squad_size", config.squad_size)

        market = data.get("market", {})
        config.market_size = market.get("size", config.market_size)
        config.market_refill_threshold = market.get(
            "refill_threshold", config.market_refill_threshold
        )
        config.market_refill_batch = market.get("refill_batch", config.market_refill_batch)

        squad = data.get("squad", {})
        config.min_squad_size = squad.get("min_size", config.min_squad_size)

        config.economy = EconomyConfig.from_dict(data.get("economy", {}))
        return config


class ConfigManager:
    """Manages simulation configuration."""

    DEFAULT_CONFIG_PATH = CONFIG_DIR / "simulation.yaml"
    LOCAL_CONFIG_PATH = CONFIG_DIR / "simulation.local.yaml"

    def __init__(self):
        self._simulation_config: SimulationConfig | None = None

    def load_yaml(self, path: Path | str) -> dict:
        """Load YAML configuration file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def load_simulation_config(self, path: Path | str | None = None) -> SimulationConfig:
        """Load simulation configuration.

        Priority:
        1. Specified path
        2. config/simulation.local.yaml (if exists)
        3. config/simulation.yaml
        """
        if path is not None:
            self._simulation_config = SimulationConfig.from_dict(self.load_yaml(path))
            return self._simulation_config

        for candidate in (self.LOCAL_CONFIG_PATH, self.DEFAULT_CONFIG_PATH):
            if candidate.exists():
                self._simulation_config = SimulationConfig.from_dict(self.load_yaml(candidate))
                return self._simulation_config

        self._simulation_config = SimulationConfig()
        return self._simulation_config

    def get_simulation_config(self) -> SimulationConfig:
        """Get simulation configuration (load if not already loaded)."""
        if self._simulation_config is None:
            return self.load_simulation_config()
        return self._simulation_config


# Global config manager instance
_config_manager = ConfigManager()


def get_config() -> ConfigManager:
    """Get global configuration manager."""
    return _config_manager
