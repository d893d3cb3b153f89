"""
Product image resolution with a process-lifetime memo.

Classifies a product by keywords in its title and category and maps the
class to a placeholder image. The memo never evicts: its keys are bounded
by distinct catalog titles, not by request volume.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from models import ImageResult, Product
from logger import get_logger

logger = get_logger(__name__)

PLACEHOLDER_IMAGES: Dict[str, str] = {
    "laptop": "https://images.unsplash.com/photo-1496181133206-80ce9b88a853?w=400&h=300&fit=crop&crop=center",
    "desktop": "https://images.unsplash.com/photo-1587831990711-23ca6441447b?w=400&h=300&fit=crop&crop=center",
    "monitor": "https://images.unsplash.com/photo-1527443224154-c4a3942d3acf?w=400&h=300&fit=crop&crop=center",
    "server": "https://images.unsplash.com/photo-1558494949-ef010cbdcc31?w=400&h=300&fit=crop&crop=center",
    "workstation": "https://images.unsplash.com/photo-1587831990711-23ca6441447b?w=400&h=300&fit=crop&crop=center",
    "gaming": "https://images.unsplash.com/photo-1493711662062-fa541adb3fc8?w=400&h=300&fit=crop&crop=center",
    "business": "https://images.unsplash.com/photo-1560472354-b33ff0c44a43?w=400&h=300&fit=crop&crop=center",
    "default": "https://images.unsplash.com/photo-1593640408182-d31b5e8b2bdc?w=400&h=300&fit=crop&crop=center",
}

# Ordered: the first matching type wins.
TITLE_RULES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("laptop", ("laptop", "notebook", "inspiron", "xps", "latitude")),
    ("desktop", ("desktop", "optiplex", "vostro")),
    ("monitor", ("monitor", "display", "ultrasharp")),
    ("server", ("server", "poweredge", "rack")),
    ("workstation", ("workstation", "precision")),
    ("gaming", ("gaming", "alienware")),
    ("business", ("business", "enterprise")),
)

CATEGORY_RULES: Tuple[Tuple[str, Tuple[str, ...]], ...] = tuple(
    (product_type, (product_type,)) for product_type, _ in TITLE_RULES
)


def _classify(text: str, rules) -> Optional[str]:
    for product_type, keywords in rules:
        if any(keyword in text for keyword in keywords):
            return product_type
    return None


def classify_product(title: str, category: Optional[str] = None) -> str:
    """Return the product type; a recognised category overrides the title."""
    product_type = _classify((title or "").lower(), TITLE_RULES) or "default"
    if category:
        product_type = _classify(category.lower(), CATEGORY_RULES) or product_type
    return product_type


class ImageResolver:
    """Memoizing (title, category) -> ImageResult resolver."""

    def __init__(self):
        self._cache: Dict[Tuple[str, Optional[str]], ImageResult] = {}

    def resolve(self, title: str, category: Optional[str] = None) -> ImageResult:
        key = (title, category)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        product_type = classify_product(title, category)
        result = ImageResult(
            url=PLACEHOLDER_IMAGES.get(product_type, PLACEHOLDER_IMAGES["default"]),
            alt_text=f"{title} - Dell Product",
            source="placeholder"
        )
        self._cache[key] = result
        logger.debug("Image resolved", title=title[:50], product_type=product_type)
        return result

    def enrich(self, products: Iterable[Product]) -> List[Product]:
        """Fill in an image for every product that lacks one."""
        enriched = []
        for product in products:
            if not product.image:
                product = product.model_copy(update={"image": self.resolve(product.title, product.category).url})
            enriched.append(product)
        return enriched

    def __len__(self) -> int:
        return len(self._cache)


_resolver: Optional[ImageResolver] = None


def get_image_resolver() -> ImageResolver:
    """Get or create the process-wide image resolver."""
    global _resolver
    if _resolver is None:
        _resolver = ImageResolver()
    return _resolver
