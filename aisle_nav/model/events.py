"""Derivation of voice commands, arrivals and product suggestions."""

import math
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence

from ..config import NavigationConfig, SuggestionConfig
from .catalog import ProductCatalog
from .planner import manhattan
from .types import (Direction, Priority, Product, ProductSuggestion, Route,
                    ShoppingListItem, VoiceCommand)

SPOKEN_DIRECTIONS = {
    Direction.RIGHT: "Keep moving forward and turn right at the next intersection in {distance}m.",
    Direction.LEFT: "Keep moving forward and turn left at the next intersection in {distance}m.",
    Direction.DOWN: "Continue straight ahead through the aisle for {distance}m.",
    Direction.UP: "Turn around and head back the way you came for {distance}m.",
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class EventGenerator:
    """
    Pure functions from (route, step index, shopping list, catalog) to events.

    Nothing here mutates engine state; the engine records visits and
    declines and passes them back in.
    """

    def __init__(self, navigation: Optional[NavigationConfig] = None,
                 suggestions: Optional[SuggestionConfig] = None):
        self.navigation = navigation or NavigationConfig()
        self.suggestions = suggestions or SuggestionConfig()

    def voice_commands(self, route: Route, step_index: int) -> List[VoiceCommand]:
        """Direction phrase for the active step plus a periodic progress phrase."""
        if route is None or not 0 <= step_index < len(route.steps):
            return []
        step = route.steps[step_index]
        spoken = SPOKEN_DIRECTIONS[step.direction].format(distance=step.distance)
        commands = [VoiceCommand(
            kind="direction",
            message=f"{step.instruction}. {spoken}",
            step_index=step_index
        )]

        interval = self.navigation.progress_interval
        if step_index > 0 and interval > 0 and step_index % interval == 0:
            progress = round_half_up(100 * step_index / len(route.steps))
            commands.append(VoiceCommand(
                kind="progress",
                message=f"Navigation progress: {progress}% complete.",
                priority=Priority.LOW,
                step_index=step_index
            ))
        return commands

    def detect_arrival(self, route: Route, step_index: int,
                       shopping_list: Iterable[ShoppingListItem],
                       visited_ids: AbstractSet[str]) -> Optional[ShoppingListItem]:
        """The unvisited list item whose product sits on the active step, if any."""
        if route is None or not 0 <= step_index < len(route.steps):
            return None
        coordinate = route.steps[step_index].coordinate
        for item in shopping_list:
            location = item.product.location
            if location is not None and tuple(location) == coordinate \
                    and item.product.id not in visited_ids:
                return item
        return None

    def arrival_command(self, product: Product, step_index: int) -> VoiceCommand:
        return VoiceCommand(
            kind="arrival",
            message=f"You have arrived at {product.name}. "
                    f"Look for it on the shelf beside you.",
            priority=Priority.HIGH,
            step_index=step_index,
            product_id=product.id
        )

    def completion_command(self, step_index: int, all_collected: bool) -> VoiceCommand:
        message = ("Navigation complete! All items collected." if all_collected
                   else "Navigation complete. Some items were not collected.")
        return VoiceCommand(
            kind="complete",
            message=message,
            priority=Priority.HIGH,
            step_index=step_index
        )

    def suggestion_command(self, suggestion: ProductSuggestion) -> VoiceCommand:
        return VoiceCommand(
            kind="suggestion",
            message=f"You might also like {suggestion.product.name}, "
                    f"{suggestion.distance}m away. {suggestion.reason}",
            priority=Priority.LOW,
            product_id=suggestion.product.id
        )

    def _affinity_match(self, reached: Product, candidate: Product) -> bool:
        reached_name = reached.name.lower()
        candidate_name = candidate.name.lower()
        for keyword, related in self.suggestions.affinities.items():
            if keyword in reached_name and any(r in candidate_name for r in related):
                return True
        return False

    def suggest(self, reached: Product, catalog: ProductCatalog,
                shopping_list: Sequence[ShoppingListItem],
                declined_ids: AbstractSet[str] = frozenset()) -> List[ProductSuggestion]:
        """
        Nearest related catalog products not already wanted.

        A candidate relates by equal category or through the keyword
        affinity table. Candidates without a location are skipped.
        """
        if reached.location is None:
            return []
        excluded = {item.product.id for item in shopping_list}
        excluded.add(reached.id)
        excluded.update(declined_ids)

        suggestions: List[ProductSuggestion] = []
        for candidate in catalog:
            if candidate.id in excluded or candidate.location is None:
                continue
            if candidate.category == reached.category:
                reason = f"Related {candidate.category} item"
            elif self._affinity_match(reached, candidate):
                reason = f"Perfect with {reached.name}!"
            else:
                continue
            distance = manhattan(reached.location, candidate.location) \
                * self.navigation.cell_distance
            suggestions.append(ProductSuggestion(
                product=candidate,
                reason=reason,
                distance=distance,
                source_product_id=reached.id
            ))

        # Stable sort keeps catalog order among equal distances
        suggestions.sort(key=lambda s: s.distance)
        return suggestions[:self.suggestions.max_suggestions]


def summarize_shopping_list(items: Sequence[ShoppingListItem]) -> Dict[str, float]:
    """Item count and total price of a shopping list."""
    return {
        'total_items': sum(item.quantity for item in items),
        'total_price': round(sum(item.product.price * item.quantity for item in items), 2),
    }
