import json
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from megan_bot.logging_config import get_logger
from megan_bot.schemas.catalog import Product

logger = get_logger("catalog_service")

# Lower-cased message substring -> promo key
PROMO_TRIGGERS = {
    "me interesa este reloj exclusivo": "reloj1",
    "me interesa este reloj de lujo": "reloj2",
}


def match_promo_trigger(normalized_text: str) -> Optional[str]:
    for trigger, key in PROMO_TRIGGERS.items():
        if trigger in normalized_text:
            return key
    return None


def _load_yaml(path: Path) -> dict:
    """Load a YAML (or JSON) mapping; missing or non-mapping files give {}."""
    if not path.exists():
        logger.warning(f"Catalog file not found: {path}")
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return data if isinstance(data, dict) else {}


def _parse_product(raw: Any, source: str) -> Optional[Product]:
    if not isinstance(raw, dict):
        return None
    try:
        return Product.model_validate(raw)
    except ValidationError as exc:
        logger.warning(
            "Skipping malformed product",
            extra={"context": {"source": source, "error": str(exc)}},
        )
        return None


class CatalogService:
    """Read-only product catalog, loaded once per process."""

    def __init__(
        self,
        categories: dict[str, list[Product]],
        promos: dict[str, Product],
        system_prompt: str = "",
        raw_catalog: Optional[dict] = None,
    ):
        self._categories = categories
        self._promos = promos
        self.system_prompt = system_prompt
        self._raw_catalog = raw_catalog if raw_catalog is not None else {
            name: [p.model_dump() for p in products] for name, products in categories.items()
        }

    @classmethod
    def from_files(cls, catalog_path: Path, promos_path: Path, system_prompt_path: Path) -> "CatalogService":
        raw_catalog = _load_yaml(catalog_path)
        categories: dict[str, list[Product]] = {}
        for name, items in raw_catalog.items():
            products = [_parse_product(item, str(name)) for item in (items if isinstance(items, list) else [])]
            categories[str(name)] = [p for p in products if p]

        promos: dict[str, Product] = {}
        for key, item in _load_yaml(promos_path).items():
            product = _parse_product(item, f"promo:{key}")
            if product:
                promos[str(key)] = product

        system_prompt = ""
        if system_prompt_path.exists():
            system_prompt = system_prompt_path.read_text(encoding="utf-8").strip()
        else:
            logger.warning(f"System prompt file not found: {system_prompt_path}")

        logger.info(
            "Catalog loaded",
            extra={
                "context": {
                    "categories": {name: len(products) for name, products in categories.items()},
                    "promos": sorted(promos),
                }
            },
        )
        return cls(categories, promos, system_prompt, raw_catalog)

    def categories(self) -> list[str]:
        return list(self._categories)

    def products(self, category: str) -> list[Product]:
        return list(self._categories.get(category, []))

    def find_product(self, code: str) -> Optional[Product]:
        for products in self._categories.values():
            for product in products:
                if product.code == code:
                    return product
        return None

    def promo(self, key: str) -> Optional[Product]:
        return self._promos.get(key)

    def as_prompt_json(self) -> str:
        return json.dumps(self._raw_catalog, ensure_ascii=False, indent=2, default=str)
