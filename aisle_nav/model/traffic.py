"""Cosmetic store congestion signal."""

import logging
from typing import Optional

import numpy as np

from ..config import TrafficConfig
from .types import Severity, TrafficAlert

logger = logging.getLogger(__name__)

CONDITIONS = ("clear", "moderate", "heavy")
CONGESTION_LEVELS = {"clear": 0, "moderate": 50, "heavy": 100}
HEAVY_DESCRIPTIONS = (
    "Heavy congestion detected",
    "Significant delays expected",
    "Consider alternative routes",
)


class TrafficMonitor:
    """
    Random congestion condition sampled on a fixed interval.

    Uncorrelated with the route graph and never alters a route; only heavy
    traffic can raise an alert. The RNG is injected so tests can seed it.
    """

    def __init__(self, config: Optional[TrafficConfig] = None,
                 rng: Optional[np.random.Generator] = None,
                 aisle_count: int = 4):
        self.config = config or TrafficConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.aisle_count = aisle_count
        self.condition = "clear"

    @property
    def congestion_level(self) -> int:
        return CONGESTION_LEVELS[self.condition]

    def reset(self) -> None:
        self.condition = "clear"

    def sample(self, clock: float) -> Optional[TrafficAlert]:
        """Draw the next condition; maybe return an alert for heavy traffic."""
        self.condition = CONDITIONS[int(self.rng.integers(0, len(CONDITIONS)))]
        if self.condition != "heavy":
            return None
        if self.rng.random() >= self.config.alert_probability:
            return None

        alert = TrafficAlert(
            aisle=int(self.rng.integers(1, self.aisle_count + 1)),
            severity=Severity.HIGH,
            description=HEAVY_DESCRIPTIONS[int(self.rng.integers(0, len(HEAVY_DESCRIPTIONS)))],
            estimated_delay=int(self.rng.integers(1, 6)),
            timestamp=clock
        )
        logger.info("Traffic alert in aisle %d: %s", alert.aisle, alert.description)
        return alert
