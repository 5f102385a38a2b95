"""
Service: users and profiles
"""
from flask import current_app
from ..db import db
from ..errors import NotFoundError, ValidationError
from ..models import User, UserProfile, ProductOrder, Payment, UserAddress

PROFILE_FIELDS = ("first_name", "last_name", "phone", "company")

ADDRESS_FIELDS = ("title", "address_line1", "address_line2", "city", "state", "zip_code", "country")
REQUIRED_ADDRESS_FIELDS = ("title", "address_line1", "city", "state", "zip_code")


def get_or_create_user(supabase_user_id, email):
    """
    Returns the local user for a Supabase account, creating it (with a free
    tier profile) on first sign in. Guest orders placed with the same email
    are linked to the user.
    """
    email = email.strip().lower()
    user = User.query.filter_by(supabase_user_id=supabase_user_id).first()

    if user is None:
        # Same inbox, new Supabase account: relink instead of duplicating
        user = User.query.filter_by(email=email).first()
        if user is not None:
            user.supabase_user_id = supabase_user_id
        else:
            user = User(supabase_user_id=supabase_user_id, email=email)
            user.profile = UserProfile(
                upload_count=0,
                upload_limit=current_app.config["PLAN_UPLOAD_LIMITS"]["free"],
                plan_type="free",
            )
            db.session.add(user)
            current_app.logger.info(f"👤 [USER_SERVICE] Created user {email}")
        db.session.flush()

    if user.profile is None:
        user.profile = UserProfile(upload_limit=current_app.config["PLAN_UPLOAD_LIMITS"]["free"])

    orders_updated, payments_updated = reassign_guest_orders(user)
    if orders_updated or payments_updated:
        current_app.logger.info(
            f"🔄 [USER_SERVICE] Linked {orders_updated} guest orders and "
            f"{payments_updated} payments to {email}"
        )

    db.session.commit()
    return user


def reassign_guest_orders(user):
    """Attaches guest orders (and their payments) placed with the user's email"""
    orders = (
        ProductOrder.query
        .filter(ProductOrder.user_id.is_(None))
        .filter(db.func.lower(ProductOrder.guest_email) == user.email.lower())
        .all()
    )
    payments_updated = 0
    for order in orders:
        order.user_id = user.id
        for payment in Payment.query.filter_by(product_order_id=order.id, user_id=None):
            payment.user_id = user.id
            payments_updated += 1
    return len(orders), payments_updated


def _split_full_name(full_name):
    parts = (full_name or "").strip().split()
    if not parts:
        return None, None
    return parts[0], " ".join(parts[1:]) or None


def sync_profile_names(user, user_metadata):
    """Fills first/last name from the OAuth metadata on a profile without a name"""
    metadata = user_metadata or {}
    first = metadata.get("given_name")
    last = metadata.get("family_name")
    if not first:
        first, last = _split_full_name(metadata.get("full_name") or metadata.get("name"))
    if not first:
        return False

    profile = user.profile
    if profile.first_name:
        return False

    profile.first_name = first
    profile.last_name = last
    db.session.commit()
    return True


def update_profile(user, data):
    """Updates the editable profile fields; other keys are ignored"""
    profile = user.profile
    for field in PROFILE_FIELDS:
        if field in data:
            value = data[field]
            setattr(profile, field, value.strip() if isinstance(value, str) else value)
    db.session.commit()
    return profile


def display_name(user):
    if user is None or user.profile is None:
        return "Customer"
    name = f"{user.profile.first_name or ''} {user.profile.last_name or ''}".strip()
    return name or "Customer"


def list_addresses(user):
    """Primary address first, then newest"""
    return (
        UserAddress.query
        .filter_by(user_id=user.id)
        .order_by(UserAddress.is_primary.desc(), UserAddress.created_at.desc(), UserAddress.id.desc())
        .all()
    )


def get_address(user, address_id):
    address = UserAddress.query.filter_by(id=address_id, user_id=user.id).first()
    if address is None:
        raise NotFoundError("Address not found")
    return address


def _clear_primary(user, keep_id=None):
    query = UserAddress.query.filter_by(user_id=user.id, is_primary=True)
    if keep_id is not None:
        query = query.filter(UserAddress.id != keep_id)
    query.update({"is_primary": False}, synchronize_session="fetch")


def _address_values(data, required):
    values = {}
    for field in ADDRESS_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{field} must be text")
        values[field] = (value or "").strip() or None

    missing = [f for f in required if not values.get(f)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if "country" in values:
        values["country"] = (values["country"] or "US").upper()
    return values


def create_address(user, data):
    values = _address_values(data, REQUIRED_ADDRESS_FIELDS)
    is_primary = bool(data.get("is_primary"))
    if is_primary:
        _clear_primary(user)

    address = UserAddress(user_id=user.id, is_primary=is_primary, **values)
    if not address.country:
        address.country = "US"
    db.session.add(address)
    db.session.commit()
    return address


def update_address(user, address_id, data):
    """Partial update; required fields may be changed but not blanked"""
    address = get_address(user, address_id)
    values = _address_values(data, [f for f in REQUIRED_ADDRESS_FIELDS if f in data])
    for field, value in values.items():
        setattr(address, field, value)

    if "is_primary" in data:
        address.is_primary = bool(data["is_primary"])
        if address.is_primary:
            _clear_primary(user, keep_id=address.id)
    db.session.commit()
    return address


def delete_address(user, address_id):
    db.session.delete(get_address(user, address_id))
    db.session.commit()


def set_primary_address(user, address_id):
    address = get_address(user, address_id)
    _clear_primary(user, keep_id=address.id)
    address.is_primary = True
    db.session.commit()
    return address
