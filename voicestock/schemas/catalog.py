"""
Product catalog schema.

The catalog is owned by the caller; the matching code only reads it.
Products load from JSON (a list of objects) or CSV (header row with
id,name,category,unit,price).
"""

from __future__ import annotations

import csv
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence


@dataclass(frozen=True)
class Product:
    """A catalog entry. Immutable once loaded."""
    id: str
    name: str
    category: str = ""
    unit: str = ""
    price: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        try:
            product_id = str(data["id"]).strip()
            name = str(data["name"]).strip()
        except KeyError as exc:
            raise ValueError(f"Product entry is missing field {exc}") from exc
        if not product_id or not name:
            raise ValueError("Product id and name must not be empty")

        price_raw = data.get("price", 0) or 0
        try:
            price = float(price_raw)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Product {product_id}: price must be a number") from exc

        return cls(
            id=product_id,
            name=name,
            category=str(data.get("category", "") or "").strip(),
            unit=str(data.get("unit", "") or "").strip(),
            price=price,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "price": self.price,
        }


Catalog = Sequence[Product]


def build_catalog(entries: Iterable[dict[str, Any]]) -> tuple[Product, ...]:
    """Turn raw dicts into Products, rejecting duplicate ids."""
    products: list[Product] = []
    seen: set[str] = set()
    for entry in entries:
        product = Product.from_dict(entry)
        if product.id in seen:
            raise ValueError(f"Duplicate product id: {product.id}")
        seen.add(product.id)
        products.append(product)
    return tuple(products)


def load_catalog(path: str | Path) -> tuple[Product, ...]:
    """
    Load a catalog file.

    Args:
        path: A .json file (list of product objects, or {"products": [...]})
              or a .csv file with a header row

    Returns:
        Products in file order
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        data = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            data = data.get("products", [])
        if not isinstance(data, list):
            raise ValueError(f"{path}: expected a list of products")
        return build_catalog(data)

    if suffix == ".csv":
        with path.open(newline="", encoding="utf-8-sig") as handle:
            return build_catalog(csv.DictReader(handle))

    raise ValueError(f"Unsupported catalog format: {path.suffix}")


def project_catalog(catalog: Catalog) -> list[dict[str, str]]:
    """Compact view sent to remote matchers: id, name and category only."""
    return [
        {"id": p.id, "name": p.name, "category": p.category}
        for p in catalog
    ]


def categories(catalog: Catalog) -> list[str]:
    """Distinct categories in first-seen order."""
    seen: dict[str, None] = {}
    for product in catalog:
        seen.setdefault(product.category, None)
    return list(seen)


def filter_by_category(catalog: Catalog, category: str | None) -> list[Product]:
    if not category:
        return list(catalog)
    return [p for p in catalog if p.category == category]
