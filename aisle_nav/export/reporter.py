"""Summary report generation for a navigation session."""

from typing import Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..model.state import NavigationSnapshot


class Reporter:
    """Accumulates snapshots and renders a formatted text report."""

    def __init__(self, store_name: str = "Store", seed: Optional[int] = None):
        self.store_name = store_name
        self.seed = seed
        self.snapshots_seen = 0
        self.peak_speed = 0.0
        self.distance_walked = 0.0
        self.stopped_ticks = 0
        self._last_position: Optional[tuple] = None

    def update(self, snapshot: "NavigationSnapshot") -> None:
        """Accumulate movement metrics per tick."""
        self.snapshots_seen += 1
        movement = snapshot.movement
        self.peak_speed = max(self.peak_speed, movement.speed)

        position = (movement.x, movement.y)
        if self._last_position is not None:
            dx = position[0] - self._last_position[0]
            dy = position[1] - self._last_position[1]
            self.distance_walked += (dx * dx + dy * dy) ** 0.5
        self._last_position = position

        if not movement.moving:
            self.stopped_ticks += 1

    def generate_summary(self, summary: Dict,
                         alerts_seen: int = 0,
                         suggestions_seen: int = 0) -> str:
        """Returns formatted text report from an engine summary dict."""
        total = summary.get('products_total', 0)
        visited = summary.get('products_visited', 0)
        completion_pct = (visited / total * 100) if total > 0 else 0

        lines: List[str] = [
            "",
            "=" * 80,
            "                    AISLE NAVIGATION SESSION REPORT",
            "=" * 80,
            f"Store: {self.store_name}",
            f"Random Seed: {self.seed if self.seed is not None else 'None (random)'}",
            "",
            "ROUTE",
            "-" * 40,
            f"Steps:                 {summary.get('current_step', 0)} / "
            f"{summary.get('total_steps', 0)}",
            f"Route Distance:        {summary.get('route_distance', 0)} m",
            f"Estimated Time:        {summary.get('estimated_minutes', 0)} min",
            f"Phase:                 {summary.get('phase', 'idle')}",
            "",
            "SHOPPING LIST",
            "-" * 40,
            f"Products Collected:    {visited} / {total} ({completion_pct:.1f}%)",
            f"Total Items:           {summary.get('total_items', 0)}",
            f"Total Price:           ${summary.get('total_price', 0.0):.2f}",
            "",
            "MOVEMENT",
            "-" * 40,
            f"Ticks Recorded:        {self.snapshots_seen}",
            f"Distance Walked:       {self.distance_walked:.2f} cells",
            f"Peak Speed:            {self.peak_speed:.2f} cells/s",
            f"Stopped Ticks:         {self.stopped_ticks}",
            "",
            "EVENTS",
            "-" * 40,
            f"Suggestions Offered:   {suggestions_seen}",
            f"Traffic Alerts:        {alerts_seen} "
            f"(current: {summary.get('traffic', 'clear')})",
            "=" * 80,
        ]
        return "\n".join(lines)
