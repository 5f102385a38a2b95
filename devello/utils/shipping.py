"""
Freight shipping estimates
Same rules as the estimate widget on the product pages (dollar amounts)
"""

INTERIOR_WOOD_DOOR = "INTERIOR_WOOD_DOOR"
METAL_GLASS_DOOR = "METAL_GLASS_DOOR"
WINDOW_STANDARD = "WINDOW_STANDARD"
GLASS_PANEL_MIRROR = "GLASS_PANEL_MIRROR"

RESIDENTIAL = "RESIDENTIAL"
COMMERCIAL_DOCK = "COMMERCIAL_DOCK"
COMMERCIAL_NO_DOCK = "COMMERCIAL_NO_DOCK"
CONSTRUCTION_SITE = "CONSTRUCTION_SITE"

CURBSIDE = "CURBSIDE"
WHITE_GLOVE = "WHITE_GLOVE"

SHIPPING_PROFILE_RULES = {
    INTERIOR_WOOD_DOOR: {"crating_fee": 0, "white_glove_allowed": True},
    METAL_GLASS_DOOR: {"crating_fee": 300, "white_glove_allowed": True},
    WINDOW_STANDARD: {"crating_fee": 0, "white_glove_allowed": True},
    GLASS_PANEL_MIRROR: {"crating_fee": 350, "white_glove_allowed": True},
}

DEFAULT_WHITE_GLOVE_FEE = 495

# Base range by first ZIP digit
_EAST = (350, 650)
_SOUTHEAST_MIDWEST = (700, 1200)
_CENTRAL_MOUNTAIN = (900, 1600)
_WEST = (1200, 2200)

ZIP_ZONE_ESTIMATES = {
    "0": _EAST, "1": _EAST, "2": _EAST,
    "3": _SOUTHEAST_MIDWEST, "4": _SOUTHEAST_MIDWEST, "5": _SOUTHEAST_MIDWEST,
    "6": _CENTRAL_MOUNTAIN, "7": _CENTRAL_MOUNTAIN,
    "8": _WEST, "9": _WEST,
}

RESIDENTIAL_SURCHARGE = 100
LIFTGATE_SURCHARGE = 125
APPOINTMENT_SURCHARGE = 75


def get_zip_zone(zip_code):
    if not zip_code:
        return None
    first_digit = str(zip_code).strip()[:1]
    return first_digit if first_digit in ZIP_ZONE_ESTIMATES else None


def calculate_shipping_estimate(zip_code, delivery_access=None, liftgate=False, appointment=False,
                                shipping_profile=None, delivery_type=CURBSIDE):
    """
    Estimates freight cost for a delivery

    Args:
        zip_code: Destination ZIP (only the first digit matters)
        delivery_access: RESIDENTIAL, COMMERCIAL_DOCK, ...
        liftgate: Liftgate required at delivery
        appointment: Delivery appointment required
        shipping_profile: Product shipping profile code
        delivery_type: CURBSIDE or WHITE_GLOVE

    Returns:
        dict: estimate_low, estimate_high, crating_fee, white_glove_fee, error
    """
    zone = get_zip_zone(zip_code)
    if not zone:
        return {
            "estimate_low": None,
            "estimate_high": None,
            "crating_fee": None,
            "white_glove_fee": None,
            "error": "Invalid ZIP code",
        }

    low, high = ZIP_ZONE_ESTIMATES[zone]

    surcharge = 0
    if delivery_access == RESIDENTIAL:
        surcharge += RESIDENTIAL_SURCHARGE
    if liftgate:
        surcharge += LIFTGATE_SURCHARGE
    if appointment:
        surcharge += APPOINTMENT_SURCHARGE

    rules = SHIPPING_PROFILE_RULES.get(shipping_profile) if shipping_profile else None
    crating_fee = rules["crating_fee"] if rules else 0
    white_glove_fee = (
        DEFAULT_WHITE_GLOVE_FEE
        if delivery_type == WHITE_GLOVE and rules and rules["white_glove_allowed"]
        else None
    )

    return {
        "estimate_low": low + surcharge,
        "estimate_high": high + surcharge,
        "crating_fee": crating_fee if crating_fee > 0 else None,
        "white_glove_fee": white_glove_fee,
        "error": None,
    }


def is_white_glove_allowed(shipping_profile):
    rules = SHIPPING_PROFILE_RULES.get(shipping_profile) if shipping_profile else None
    return bool(rules and rules["white_glove_allowed"])


def is_white_glove_recommended(shipping_profile):
    # Fragile glass ships crated and is usually worth a white glove crew
    return shipping_profile in (GLASS_PANEL_MIRROR, METAL_GLASS_DOOR)
