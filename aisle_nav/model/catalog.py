"""Product catalog registry and shopping list serialization."""

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Union

import yaml

from ..errors import CatalogError
from .types import Product, ShoppingListItem

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "catalog.yaml"


def _parse_product(raw: Dict) -> Product:
    """Parse one product entry from raw YAML/JSON data."""
    try:
        location = raw.get('location')
        return Product(
            id=str(raw['id']),
            name=raw['name'],
            category=raw.get('category', ''),
            price=float(raw.get('price', 0.0)),
            aisle=raw.get('aisle', ''),
            location=tuple(location) if isinstance(location, (list, tuple)) else None,
            image=raw.get('image', '')
        )
    except (KeyError, TypeError, ValueError) as e:
        raise CatalogError(f"Malformed product entry: {raw!r}", details=str(e)) from e


def product_to_dict(product: Product) -> Dict:
    return {
        'id': product.id,
        'name': product.name,
        'category': product.category,
        'price': product.price,
        'aisle': product.aisle,
        'image': product.image,
        'location': list(product.location) if product.location is not None else None,
    }


class ProductCatalog:
    """Static registry of products keyed by id, iterated in insertion order."""

    def __init__(self, products: Sequence[Product] = ()):
        self._products: Dict[str, Product] = {}
        for product in products:
            if product.id in self._products:
                raise CatalogError(f"Duplicate product id in catalog: {product.id}")
            self._products[product.id] = product

    def __len__(self) -> int:
        return len(self._products)

    def __iter__(self) -> Iterator[Product]:
        return iter(self._products.values())

    def __contains__(self, product_id: str) -> bool:
        return product_id in self._products

    def find(self, product_id: str) -> Optional[Product]:
        return self._products.get(product_id)

    def get(self, product_id: str) -> Product:
        product = self._products.get(product_id)
        if product is None:
            raise CatalogError(f"Unknown product id: {product_id}")
        return product

    def resolve(self, item: ShoppingListItem) -> ShoppingListItem:
        """
        Replace a stored product with its canonical catalog entry.

        The stored location is never trusted; unknown products are kept
        with their location cleared so the grid builder places them.
        """
        canonical = self._products.get(item.product.id)
        if canonical is None:
            logger.warning("Product %s (%s) is not in the catalog",
                           item.product.id, item.product.name)
            return replace(item, product=replace(item.product, location=None))
        return replace(item, product=canonical)


def load_catalog(path: Union[str, Path] = DEFAULT_CATALOG_PATH) -> ProductCatalog:
    """Load a product catalog from a YAML file with a top-level `products` list."""
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    entries = raw.get('products') if isinstance(raw, dict) else None
    if not isinstance(entries, list):
        raise CatalogError(f"Catalog file has no 'products' list: {path}")
    catalog = ProductCatalog([_parse_product(entry) for entry in entries])
    logger.debug("Loaded %d products from %s", len(catalog), path)
    return catalog


def shopping_list_to_json(items: Sequence[ShoppingListItem]) -> str:
    """Serialize as a JSON array of {product, quantity} objects."""
    return json.dumps([
        {'product': product_to_dict(item.product), 'quantity': item.quantity}
        for item in items
    ])


def shopping_list_from_json(text: str, catalog: ProductCatalog) -> List[ShoppingListItem]:
    """
    Read a persisted shopping list and re-resolve every product against
    the catalog. Entries that cannot be parsed are skipped with a warning.
    """
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise CatalogError("Shopping list is not valid JSON", details=str(e)) from e
    if not isinstance(raw, list):
        raise CatalogError("Shopping list must be a JSON array")

    items: List[ShoppingListItem] = []
    for entry in raw:
        try:
            product = _parse_product(entry['product'])
            quantity = max(1, int(entry.get('quantity', 1)))
        except (CatalogError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Skipping malformed shopping list entry %r: %s", entry, e)
            continue
        items.append(catalog.resolve(ShoppingListItem(product=product, quantity=quantity)))
    return items
