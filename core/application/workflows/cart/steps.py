"""Steps shared by the cart workflows."""

import logging
from dataclasses import dataclass
from typing import List

from core.domain.entities.cart import Cart, CartLineItem
from core.domain.entities.product import ProductVariant
from core.domain.exceptions import ConflictError, NotFoundError
from core.domain.repositories import CartRepository, InventoryRepository
from orchestration import ContextKey, Step, StepResponse, WorkflowContext, create_step

logger = logging.getLogger(__name__)

CART = ContextKey[Cart]("cart")


@dataclass
class QuantityCheck:
    """Quantity of a variant the cart will hold after the change."""

    variant: ProductVariant
    quantity: int


def get_cart_step(carts: CartRepository) -> Step[str, Cart]:
    async def get_cart(cart_id: str, ctx: WorkflowContext) -> StepResponse[Cart]:
        cart = await carts.find_by_id(cart_id)
        if cart is None:
            raise NotFoundError(
                f"Cart not found: {cart_id}", code="CART_NOT_FOUND", details={"cart_id": cart_id}
            )
        ctx.set(CART, cart)
        return StepResponse.of(cart)

    return create_step("get-cart", get_cart)


async def _validate_cart(cart: Cart, ctx: WorkflowContext) -> StepResponse[Cart]:
    cart.ensure_open()
    return StepResponse.of(cart)


validate_cart_step: Step[Cart, Cart] = create_step("validate-cart", _validate_cart)


def confirm_inventory_step(inventory: InventoryRepository | None) -> Step[List[QuantityCheck], None]:
    """Reject quantities above what is available for inventory-managed variants."""

    async def confirm_inventory(checks: List[QuantityCheck], ctx: WorkflowContext) -> StepResponse[None]:
        if inventory is None:
            return StepResponse.of(None)
        for check in checks:
            variant = check.variant
            if not variant.manage_inventory or not variant.inventory_item_id or not variant.location_id:
                continue
            level = await inventory.find_level(variant.inventory_item_id, variant.location_id)
            available = level.available_quantity if level else 0
            if available < check.quantity:
                raise ConflictError(
                    f"Insufficient inventory for variant {variant.id}: "
                    f"requested {check.quantity}, available {available}",
                    code="INSUFFICIENT_INVENTORY",
                    details={"variant_id": variant.id, "available": available},
                )
        return StepResponse.of(None)

    return create_step("confirm-inventory", confirm_inventory)


def restore_cart_items(carts: CartRepository):
    """Compensation that puts a saved snapshot of the cart lines back."""

    async def restore(_input, cart: Cart, snapshot: List[CartLineItem], ctx: WorkflowContext) -> None:
        current = await carts.find_by_id(cart.id)
        if current is None:
            logger.warning(f"Cart {cart.id} disappeared before its items could be restored")
            return
        current.restore_items(snapshot)
        await carts.save(current)
        logger.info(f"Restored {len(snapshot)} line item(s) on cart {cart.id}")

    return restore


def refresh_cart_step(carts: CartRepository) -> Step[str, Cart]:
    """Reload the cart, recompute every line and the totals, and save."""

    async def refresh_cart(cart_id: str, ctx: WorkflowContext) -> StepResponse[Cart]:
        cart = await carts.find_by_id(cart_id)
        if cart is None:
            raise NotFoundError(f"Cart not found: {cart_id}", code="CART_NOT_FOUND")
        cart.recalculate_totals()
        await carts.save(cart)
        ctx.set(CART, cart)
        return StepResponse.of(cart)

    return create_step("refresh-cart-totals", refresh_cart)
