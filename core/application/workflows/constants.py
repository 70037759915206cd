"""Registered workflow names, ``<aggregate>.<action>``."""

from typing import Optional


class WorkflowNames:
    ADD_TO_CART = "cart.add-item"
    UPDATE_LINE_ITEM = "cart.update-line-item"
    REMOVE_LINE_ITEM = "cart.remove-line-item"
    AUTHORIZE_PAYMENT = "payment.authorize"
    CAPTURE_PAYMENT = "payment.capture"
    REFUND_PAYMENT = "payment.refund"
    CANCEL_ORDER = "order.cancel"
    ADJUST_INVENTORY = "inventory.adjust"
    PROCESS_RETURN_REFUND = "return.process-refund"


def cart_lock_key(cart_id: str) -> str:
    return f"cart:{cart_id}"


def payment_lock_key(payment_id: str) -> str:
    return f"payment:{payment_id}"


def order_lock_key(order_id: str) -> str:
    return f"order:{order_id}"


def return_lock_key(return_id: str) -> str:
    return f"return:{return_id}"


def inventory_lock_key(
    inventory_level_id: Optional[str] = None,
    item_ref: Optional[str] = None,
    location_id: Optional[str] = None,
) -> str:
    """Level id when known, otherwise ``<sku or item id>@<location>``."""
    if inventory_level_id:
        return f"inventory:{inventory_level_id}"
    return f"inventory:{item_ref}@{location_id}"
