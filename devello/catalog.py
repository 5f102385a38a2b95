"""
Catalog seed data
Used by init_dev_data() and scripts/seed_catalog.py
"""
from .db import db
from .models import Product

# Prices in cents
CATALOG = [
    {
        "name": "Vinyl Double-Hung Window",
        "slug": "vinyl-double-hung-window",
        "description": "Energy efficient double-hung window with Low-E glass and tilt-in sashes.",
        "price": 38900,
        "category": "windows",
        "metadata": {
            "shipping_profile": "WINDOW_STANDARD",
            "variants": [
                {"name": "24 x 36", "price": 38900},
                {"name": "30 x 48", "price": 45900},
                {"name": "36 x 60", "price": 54900},
            ],
        },
    },
    {
        "name": "Aluminum Sliding Window",
        "slug": "aluminum-sliding-window",
        "description": "Slim-frame horizontal slider, powder coated aluminum.",
        "price": 42500,
        "category": "windows",
        "metadata": {"shipping_profile": "WINDOW_STANDARD"},
    },
    {
        "name": "Solid Oak Interior Door",
        "slug": "solid-oak-interior-door",
        "description": "Pre-hung solid oak shaker door, ready to stain.",
        "price": 64900,
        "category": "doors",
        "metadata": {
            "shipping_profile": "INTERIOR_WOOD_DOOR",
            "variants": [
                {"name": "30 in", "price": 64900},
                {"name": "32 in", "price": 67900},
                {"name": "36 in", "price": 72900},
            ],
        },
    },
    {
        "name": "Steel and Glass Entry Door",
        "slug": "steel-glass-entry-door",
        "description": "Black steel frame entry door with tempered glass panels.",
        "price": 289900,
        "category": "doors",
        "metadata": {"shipping_profile": "METAL_GLASS_DOOR"},
    },
    {
        "name": "Crown Molding Kit",
        "slug": "crown-molding-kit",
        "description": "Primed MDF crown molding, 8 ft lengths with inside and outside corners.",
        "price": 12900,
        "category": "millwork",
        "metadata": {},
    },
    {
        "name": "Custom Tempered Glass Panel",
        "slug": "custom-tempered-glass-panel",
        "description": "Cut-to-size tempered glass for shower screens, tabletops and railings.",
        "price": 0,
        "category": "glass",
        "product_type": "custom",
        "metadata": {"shipping_profile": "GLASS_PANEL_MIRROR", "requires_quote": True},
    },
    {
        "name": "Frameless Wall Mirror",
        "slug": "frameless-wall-mirror",
        "description": "Polished edge mirror made to your measurements.",
        "price": 0,
        "category": "mirrors",
        "product_type": "custom",
        "metadata": {"shipping_profile": "GLASS_PANEL_MIRROR", "requires_quote": True},
    },
    {
        "name": "Brass Pendant Light",
        "slug": "brass-pendant-light",
        "description": "Brushed brass pendant with opal glass shade.",
        "price": 18900,
        "category": "lighting",
        "metadata": {},
    },
    {
        "name": "Floating Vanity Sink",
        "slug": "floating-vanity-sink",
        "description": "Wall-mounted vanity with integrated quartz sink.",
        "price": 99900,
        "category": "bathroom",
        "metadata": {},
    },
    {
        "name": "Dummy Window",
        "slug": "dummy-window",
        "description": "Test product for end-to-end checkout checks.",
        "price": 100,
        "category": "windows",
        "is_test": True,
        "visible_in_catalog": False,
        "metadata": {"is_test": True},
    },
]


def seed_catalog(update_existing=False):
    """
    Upserts CATALOG by slug.

    Returns:
        tuple: (created, updated)
    """
    created = updated = 0
    for entry in CATALOG:
        product = Product.query.filter_by(slug=entry["slug"]).first()
        if product is None:
            product = Product(slug=entry["slug"])
            db.session.add(product)
            created += 1
        elif not update_existing:
            continue
        else:
            updated += 1

        product.name = entry["name"]
        product.description = entry["description"]
        product.price = entry["price"]
        product.currency = "usd"
        product.category = entry["category"]
        product.product_type = entry.get("product_type", "one_time")
        product.status = "active"
        product.is_test = entry.get("is_test", False)
        product.visible_in_catalog = entry.get("visible_in_catalog", True)
        product.meta = dict(entry["metadata"])

    db.session.commit()
    return created, updated
