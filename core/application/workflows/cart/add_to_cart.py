"""
Add-to-cart workflow.

Adds one or more variants to a cart. Unit prices are always resolved from
the catalog in the cart's currency; a line for a variant already in the
cart is merged by adding to its quantity.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from core.domain.entities.cart import Cart, CartLineItem
from core.domain.entities.product import ProductVariant
from core.domain.exceptions import NotFoundError, ValidationError
from core.domain.repositories import CartRepository, InventoryRepository, ProductVariantRepository
from orchestration import ContextKey, StepResponse, Workflow, WorkflowContext, create_step

from ..constants import WorkflowNames, cart_lock_key
from .steps import (
    CART,
    QuantityCheck,
    confirm_inventory_step,
    get_cart_step,
    refresh_cart_step,
    restore_cart_items,
    validate_cart_step,
)


@dataclass
class LineItemRequest:
    variant_id: str
    quantity: int


@dataclass
class AddToCartInput:
    cart_id: str
    items: List[LineItemRequest] = field(default_factory=list)


@dataclass
class PricedLineItem:
    variant: ProductVariant
    quantity: int
    unit_price: Decimal


PRICED_ITEMS = ContextKey[List[PricedLineItem]]("priced_items")


class AddToCartWorkflow(Workflow[AddToCartInput, Cart]):
    name = WorkflowNames.ADD_TO_CART
    input_type = AddToCartInput
    output_type = Cart

    def __init__(
        self,
        carts: CartRepository,
        variants: ProductVariantRepository,
        inventory: Optional[InventoryRepository] = None,
    ):
        self._carts = carts
        self._variants = variants

        self.get_cart = get_cart_step(carts)
        self.validate_cart = validate_cart_step
        self.validate_items = create_step("validate-items", self._validate_items)
        self.resolve_prices = create_step("resolve-variant-prices", self._resolve_prices)
        self.confirm_inventory = confirm_inventory_step(inventory)
        self.create_line_items = create_step(
            "create-line-items", self._create_line_items, restore_cart_items(carts)
        )
        self.refresh_cart = refresh_cart_step(carts)

    def lock_key_for(self, input_: AddToCartInput) -> str:
        return cart_lock_key(input_.cart_id)

    async def execute(self, input_: AddToCartInput, ctx: WorkflowContext) -> Cart:
        cart = (await self.get_cart.invoke(input_.cart_id, ctx)).data
        await self.validate_cart.invoke(cart, ctx)
        await self.validate_items.invoke(input_.items, ctx)

        priced = (await self.resolve_prices.invoke(input_.items, ctx)).data
        await self.confirm_inventory.invoke(self._quantity_checks(cart, priced), ctx)

        await self.create_line_items.invoke(priced, ctx)
        return (await self.refresh_cart.invoke(cart.id, ctx)).data

    async def _validate_items(self, items: List[LineItemRequest], ctx: WorkflowContext) -> None:
        if not items:
            raise ValidationError("At least one item is required", code="EMPTY_ITEMS")
        for item in items:
            if not item.variant_id or not item.variant_id.strip():
                raise ValidationError("Variant id is required", code="MISSING_VARIANT_ID")
            if item.quantity <= 0:
                raise ValidationError(
                    f"Quantity must be positive for variant {item.variant_id}, got {item.quantity}",
                    code="INVALID_QUANTITY",
                    details={"variant_id": item.variant_id},
                )

    async def _resolve_prices(
        self, items: List[LineItemRequest], ctx: WorkflowContext
    ) -> StepResponse[List[PricedLineItem]]:
        cart = ctx.require(CART)
        variant_ids = [item.variant_id for item in items]
        variants = {v.id: v for v in await self._variants.find_by_ids(variant_ids)}

        missing = [variant_id for variant_id in variant_ids if variant_id not in variants]
        if missing:
            raise NotFoundError(
                f"Variants not found: {', '.join(missing)}",
                code="VARIANT_NOT_FOUND",
                details={"variant_ids": missing},
            )

        priced: List[PricedLineItem] = []
        for item in items:
            variant = variants[item.variant_id]
            unit_price = variant.price_for(cart.currency_code)
            if unit_price is None:
                raise ValidationError(
                    f"Variant {variant.id} has no price in {cart.currency_code}",
                    code="MISSING_PRICE",
                    details={"variant_id": variant.id, "currency_code": cart.currency_code},
                )
            priced.append(PricedLineItem(variant=variant, quantity=item.quantity, unit_price=unit_price))

        ctx.set(PRICED_ITEMS, priced)
        return StepResponse.of(priced)

    @staticmethod
    def _quantity_checks(cart: Cart, priced: List[PricedLineItem]) -> List[QuantityCheck]:
        totals: dict = {}
        for p in priced:
            if p.variant.id not in totals:
                existing = cart.find_item_by_variant(p.variant.id)
                totals[p.variant.id] = QuantityCheck(p.variant, existing.quantity if existing else 0)
            totals[p.variant.id].quantity += p.quantity
        return list(totals.values())

    async def _create_line_items(
        self, priced: List[PricedLineItem], ctx: WorkflowContext
    ) -> StepResponse[Cart]:
        cart = ctx.require(CART)
        snapshot = cart.snapshot_items()

        for p in priced:
            cart.add_item(
                CartLineItem(
                    variant_id=p.variant.id,
                    title=p.variant.display_title,
                    sku=p.variant.sku,
                    quantity=p.quantity,
                    unit_price=p.unit_price,
                    currency_code=cart.currency_code,
                )
            )

        await self._carts.save(cart)
        return StepResponse.of(cart, compensation_data=snapshot)
