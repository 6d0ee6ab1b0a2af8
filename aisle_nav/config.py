"""Configuration dataclasses and YAML loader for the aisle navigation engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple, Dict, Any, Optional
from pathlib import Path
import yaml

from .errors import ConfigError


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class AdvancePolicy(Enum):
    """Which source owns the authoritative step index."""
    ARRIVAL = "arrival"    # kinematic arrival advances the cursor
    INTERVAL = "interval"  # fixed-interval timer advances the cursor


DEFAULT_AFFINITIES: Dict[str, List[str]] = {
    'bread': ['jam', 'butter', 'cheese', 'milk'],
    'milk': ['cereal', 'bread', 'yogurt', 'cheese'],
    'pasta': ['sauce', 'cheese', 'olive oil', 'garlic'],
    'chicken': ['rice', 'vegetables', 'sauce', 'spices'],
    'eggs': ['bread', 'milk', 'cheese', 'bacon'],
    'tomatoes': ['pasta', 'cheese', 'basil', 'olive oil'],
    'potatoes': ['chicken', 'vegetables', 'butter', 'cheese'],
    'onions': ['pasta', 'chicken', 'vegetables', 'garlic'],
    'garlic': ['pasta', 'chicken', 'vegetables', 'olive oil'],
    'cheese': ['bread', 'pasta', 'milk', 'eggs'],
}


@dataclass
class GridConfig:
    width: int = 18
    height: int = 24


@dataclass
class LayoutConfig:
    aisle_count: int = 4
    aisle_width: int = 2
    aisle_spacing: int = 2   # gap between one corridor's end and the next one's start
    first_aisle_x: int = 2
    cross_aisles: List[int] = field(default_factory=lambda: [1, 6, 12, 18, 22])
    entrance: Tuple[int, int] = (9, 23)
    checkout: Tuple[int, int] = (9, 0)

    def aisle_xs(self) -> List[int]:
        """Left column of every vertical corridor, left to right."""
        return [self.first_aisle_x + i * (self.aisle_width + self.aisle_spacing)
                for i in range(self.aisle_count)]


@dataclass
class NavigationConfig:
    cell_distance: int = 2        # meters walked per grid cell
    progress_interval: int = 3    # announce progress every N steps
    include_checkout: bool = True
    advance_policy: AdvancePolicy = AdvancePolicy.ARRIVAL
    auto_advance_interval: float = 1.5  # seconds, INTERVAL policy only


@dataclass
class MovementConfig:
    tick_rate: float = 60.0
    arrival_threshold: float = 0.1
    heading_ease: float = 0.1
    alignment_threshold: float = 0.3  # radians
    max_speed: float = 2.0            # cells per second
    acceleration: float = 0.5
    deceleration: float = 0.3

    @property
    def dt(self) -> float:
        return 1.0 / self.tick_rate


@dataclass
class SuggestionConfig:
    max_suggestions: int = 3
    display_delay: float = 1.5
    affinities: Dict[str, List[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_AFFINITIES.items()}
    )


@dataclass
class TrafficConfig:
    enabled: bool = True
    interval: float = 15.0
    alert_probability: float = 0.3


@dataclass
class EngineConfig:
    grid: GridConfig = field(default_factory=GridConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    navigation: NavigationConfig = field(default_factory=NavigationConfig)
    movement: MovementConfig = field(default_factory=MovementConfig)
    suggestions: SuggestionConfig = field(default_factory=SuggestionConfig)
    traffic: TrafficConfig = field(default_factory=TrafficConfig)

    seed: Optional[int] = None
    log_level: str = "INFO"
    catalog_path: Optional[Path] = None


def _parse_coord(raw: Any, name: str) -> Tuple[int, int]:
    """Parse an [x, y] pair from raw YAML data."""
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise ConfigError(f"{name} must be an [x, y] pair", details=raw)
    return int(raw[0]), int(raw[1])


def _parse_layout(layout_raw: Dict) -> LayoutConfig:
    """Parse store layout from raw YAML data."""
    defaults = LayoutConfig()
    return LayoutConfig(
        aisle_count=layout_raw.get('aisle_count', defaults.aisle_count),
        aisle_width=layout_raw.get('aisle_width', defaults.aisle_width),
        aisle_spacing=layout_raw.get('aisle_spacing', defaults.aisle_spacing),
        first_aisle_x=layout_raw.get('first_aisle_x', defaults.first_aisle_x),
        cross_aisles=list(layout_raw.get('cross_aisles', defaults.cross_aisles)),
        entrance=_parse_coord(layout_raw.get('entrance', defaults.entrance), 'entrance'),
        checkout=_parse_coord(layout_raw.get('checkout', defaults.checkout), 'checkout')
    )


def _parse_navigation(nav_raw: Dict) -> NavigationConfig:
    """Parse route/step settings from raw YAML data."""
    defaults = NavigationConfig()
    policy_raw = nav_raw.get('advance_policy', defaults.advance_policy.value)
    try:
        policy = AdvancePolicy(policy_raw)
    except ValueError:
        raise ConfigError(f"Unknown advance policy: {policy_raw}") from None
    return NavigationConfig(
        cell_distance=nav_raw.get('cell_distance', defaults.cell_distance),
        progress_interval=nav_raw.get('progress_interval', defaults.progress_interval),
        include_checkout=nav_raw.get('include_checkout', defaults.include_checkout),
        advance_policy=policy,
        auto_advance_interval=nav_raw.get('auto_advance_interval',
                                          defaults.auto_advance_interval)
    )


def _parse_movement(mv_raw: Dict) -> MovementConfig:
    """Parse kinematic constants from raw YAML data."""
    defaults = MovementConfig()
    return MovementConfig(
        tick_rate=mv_raw.get('tick_rate', defaults.tick_rate),
        arrival_threshold=mv_raw.get('arrival_threshold', defaults.arrival_threshold),
        heading_ease=mv_raw.get('heading_ease', defaults.heading_ease),
        alignment_threshold=mv_raw.get('alignment_threshold', defaults.alignment_threshold),
        max_speed=mv_raw.get('max_speed', defaults.max_speed),
        acceleration=mv_raw.get('acceleration', defaults.acceleration),
        deceleration=mv_raw.get('deceleration', defaults.deceleration)
    )


def _parse_suggestions(sg_raw: Dict) -> SuggestionConfig:
    """Parse suggestion settings and the keyword-affinity table."""
    defaults = SuggestionConfig()
    affinities = sg_raw.get('affinities', defaults.affinities)
    if not isinstance(affinities, dict):
        raise ConfigError("suggestions.affinities must be a mapping", details=affinities)
    return SuggestionConfig(
        max_suggestions=sg_raw.get('max_suggestions', defaults.max_suggestions),
        display_delay=sg_raw.get('display_delay', defaults.display_delay),
        affinities={str(k).lower(): [str(v).lower() for v in vals]
                    for k, vals in affinities.items()}
    )


def _parse_traffic(tr_raw: Dict) -> TrafficConfig:
    """Parse congestion simulation settings."""
    defaults = TrafficConfig()
    return TrafficConfig(
        enabled=tr_raw.get('enabled', defaults.enabled),
        interval=tr_raw.get('interval', defaults.interval),
        alert_probability=tr_raw.get('alert_probability', defaults.alert_probability)
    )


def load_config(config_path: Path) -> EngineConfig:
    """Load and validate YAML configuration file."""
    config_path = Path(config_path)
    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration root must be a mapping: {config_path}")

    grid_raw = raw.get('grid', {})
    grid = GridConfig(
        width=grid_raw.get('width', GridConfig.width),
        height=grid_raw.get('height', GridConfig.height)
    )

    log_level = str(raw.get('log_level', 'INFO')).upper()
    if log_level not in LOG_LEVELS:
        raise ConfigError(f"Unknown log level: {log_level}", details=LOG_LEVELS)

    catalog_path = raw.get('catalog')
    if catalog_path is not None:
        # Relative catalog paths resolve against the config file
        catalog_path = (config_path.parent / catalog_path).resolve()

    return EngineConfig(
        grid=grid,
        layout=_parse_layout(raw.get('layout', {})),
        navigation=_parse_navigation(raw.get('navigation', {})),
        movement=_parse_movement(raw.get('movement', {})),
        suggestions=_parse_suggestions(raw.get('suggestions', {})),
        traffic=_parse_traffic(raw.get('traffic', {})),
        seed=raw.get('seed'),
        log_level=log_level,
        catalog_path=catalog_path
    )
