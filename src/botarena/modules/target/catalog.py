"""In-memory product catalog served by the target service."""

import math
from dataclasses import asdict, dataclass
from typing import Any

DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True, slots=True)
class Product:
    """One catalog item."""

    id: str
    name: str
    description: str
    price: float
    category: str
    in_stock: bool = True

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["inStock"] = data.pop("in_stock")
        return data


PRODUCTS: tuple[Product, ...] = (
    Product("prod-001", "Wireless Bluetooth Headphones",
            "Over-ear headphones with active noise cancellation and 30-hour battery life.",
            149.99, "Electronics"),
    Product("prod-002", "Mechanical Keyboard",
            "RGB backlit mechanical keyboard with tactile switches and programmable macros.",
            129.99, "Electronics"),
    Product("prod-003", "Ergonomic Office Chair",
            "Adjustable lumbar support, breathable mesh back and 4D armrests.",
            399.99, "Furniture"),
    Product("prod-004", "Smart Watch Pro",
            "Fitness tracking, heart-rate monitoring and seven-day battery.",
            249.99, "Electronics"),
    Product("prod-005", "Standing Desk",
            "Electric height-adjustable desk with memory presets.",
            549.99, "Furniture"),
    Product("prod-006", "4K Monitor 27 inch",
            "IPS panel with HDR support and USB-C power delivery.",
            379.99, "Electronics"),
    Product("prod-007", "USB-C Docking Station",
            "Dual display output, gigabit ethernet and 100W pass-through charging.",
            189.99, "Accessories"),
    Product("prod-008", "Wireless Earbuds",
            "True wireless earbuds with charging case and transparency mode.",
            99.99, "Electronics"),
    Product("prod-009", "HD Webcam",
            "1080p webcam with dual microphones and privacy shutter.",
            79.99, "Accessories"),
    Product("prod-010", "Portable Power Bank",
            "20000mAh power bank with fast charging for phones and laptops.",
            49.99, "Accessories"),
    Product("prod-011", "Bluetooth Speaker",
            "Waterproof portable speaker with 12-hour playback.",
            69.99, "Electronics", in_stock=False),
    Product("prod-012", "Ergonomic Mouse",
            "Vertical mouse designed to reduce wrist strain.",
            39.99, "Accessories"),
    Product("prod-013", "Desk Lamp",
            "LED desk lamp with adjustable color temperature and wireless charging base.",
            59.99, "Furniture"),
    Product("prod-014", "Laptop Stand",
            "Aluminium stand that raises the screen to eye level.",
            34.99, "Accessories"),
    Product("prod-015", "Noise Cancelling Headset",
            "Office headset with boom microphone and all-day comfort.",
            119.99, "Electronics"),
)


def _page(items: list[Product], page: int, page_size: int) -> dict[str, Any]:
    page = max(1, page)
    page_size = max(1, page_size)
    start = (page - 1) * page_size
    return {
        "products": [item.to_dict() for item in items[start : start + page_size]],
        "total": len(items),
        "page": page,
        "pageSize": page_size,
        "totalPages": math.ceil(len(items) / page_size),
    }


def list_products(
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    category: str | None = None,
) -> dict[str, Any]:
    """Return one page of the catalog, optionally filtered by category."""
    items = list(PRODUCTS)
    if category:
        items = [p for p in items if p.category.lower() == category.lower()]
    return _page(items, page, page_size)


def search_products(
    query: str, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE
) -> dict[str, Any]:
    """Case-insensitive match on name, description and category; any term may match."""
    terms = [term for term in query.lower().split() if term]
    matches = [
        p
        for p in PRODUCTS
        if any(
            term in p.name.lower() or term in p.description.lower() or term in p.category.lower()
            for term in terms
        )
    ]
    return _page(matches, page, page_size)


def get_product(product_id: str) -> Product | None:
    for product in PRODUCTS:
        if product.id == product_id:
            return product
    return None


def categories() -> list[str]:
    return sorted({p.category for p in PRODUCTS})
