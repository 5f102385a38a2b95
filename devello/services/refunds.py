"""
Service: refunds

Customers ask for a refund on a paid order; an admin approves (Stripe refund)
or rejects it. Emails never fail the request, they are logged only.
"""
from datetime import datetime

from flask import current_app
from ..db import db
from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..models import Payment, ProductOrder, RefundRequest
from . import stripe_service
from .email_service import send_refund_request_email, send_refund_status_email
from .orders import customer_email_for

REFUND_ACTIONS = ("approve", "reject")


def _refundable_payment(order):
    return (
        Payment.query
        .filter_by(product_order_id=order.id, status="succeeded")
        .order_by(Payment.id.desc())
        .first()
    )


def request_refund(user, order_id, reason, description=None, amount=None):
    """
    Opens a pending refund request on one of the user's paid orders.

    Args:
        amount: Cents; defaults to the full payment amount

    Raises:
        NotFoundError: unknown order
        ForbiddenError: order belongs to someone else
        ValidationError: not paid, already pending, or a bad amount
    """
    order = db.session.get(ProductOrder, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    if order.user_id != user.id:
        raise ForbiddenError("You do not have permission to refund this order")
    if order.payment_status != "paid":
        raise ValidationError("Order is not eligible for refund")

    pending = RefundRequest.query.filter_by(product_order_id=order.id, status="pending").first()
    if pending is not None:
        raise ValidationError("A refund request is already pending for this order")

    payment = _refundable_payment(order)
    if payment is None:
        raise ValidationError("No successful payment found for this order")

    if amount is None:
        amount = payment.amount
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError("Refund amount must be a positive number of cents")
    if amount > payment.amount:
        raise ValidationError("Refund amount cannot exceed the payment amount")

    refund = RefundRequest(
        product_order_id=order.id,
        payment_id=payment.id,
        initiated_by=user.id,
        reason=reason,
        description=description or None,
        requested_amount=amount,
        status="pending",
    )
    db.session.add(refund)
    db.session.commit()
    current_app.logger.info(f"💸 [REFUNDS] Request #{refund.id} for {order.order_number}: {amount}")

    result = send_refund_request_email(refund, user.email)
    if not result.success:
        current_app.logger.error(f"❌ [REFUNDS] Admin email failed for request #{refund.id}: {result.error}")
    return refund


def resolve_refund(refund_id, action, admin_notes=None):
    """
    Approves (refunds through Stripe) or rejects a pending request.

    A full refund marks the payment and the order refunded; a smaller one
    marks them partially_refunded.
    """
    if action not in REFUND_ACTIONS:
        raise ValidationError("Invalid action. Must be 'approve' or 'reject'")

    refund = db.session.get(RefundRequest, refund_id)
    if refund is None:
        raise NotFoundError("Refund request not found")
    if refund.status != "pending":
        raise ValidationError(f"Refund request is already {refund.status}")

    if action == "reject":
        refund.status = "rejected"
    else:
        payment = refund.payment
        stripe_refund = stripe_service.create_refund(
            refund.requested_amount,
            {"refund_request_id": refund.id, "order_id": refund.product_order_id},
            charge_id=payment.stripe_charge_id,
            payment_intent_id=payment.stripe_payment_intent_id,
        )
        refund.status = "processed"
        refund.resolved_amount = stripe_refund["amount"]
        refund.stripe_refund_id = stripe_refund["id"]

        payment_status = "refunded" if refund.resolved_amount >= payment.amount else "partially_refunded"
        payment.status = payment_status
        refund.order.payment_status = payment_status

    refund.admin_notes = admin_notes or refund.admin_notes
    refund.resolved_at = datetime.utcnow()
    db.session.commit()
    current_app.logger.info(f"💸 [REFUNDS] Request #{refund.id} {refund.status}")

    recipient = customer_email_for(refund.order)
    if recipient:
        result = send_refund_status_email(refund, recipient)
        if not result.success:
            current_app.logger.error(f"❌ [REFUNDS] Status email failed for request #{refund.id}: {result.error}")
    return refund
