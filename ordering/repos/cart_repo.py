# ordering/repos/cart_repo.py
import json
import uuid
from datetime import datetime, timezone

from sqlalchemy import select, update, delete, insert
from sqlalchemy.orm import Session, selectinload

from ordering.data.models.cart import CartModel
from ordering.data.models.cart_item import CartItemModel
from ordering.domain.enums import CartStatus
from ordering.domain.errors import CartVersionConflict
from ordering.domain.schemas import Cart, CartLine


def options_to_json(options: dict | None) -> str:
    """Canonical form of a selected-options payload, usable as part of a key."""
    if not options:
        return ""
    return json.dumps(options, sort_keys=True, separators=(",", ":"))


def options_from_json(raw: str | None) -> dict | None:
    if not raw:
        return None
    return json.loads(raw)


class CartRepo:
    """
    Durable store of carts, the source of truth behind the redis mirror.
    Reads always go to the database (populate_existing), never the identity map.
    """

    def __init__(self, db: Session):
        self.db = db

    # =====================================================
    # READ
    # =====================================================
    def get_cart(self, cart_id: str) -> Cart | None:
        stmt = (
            select(CartModel)
            .where(CartModel.id == cart_id)
            .options(selectinload(CartModel.items))
            .execution_options(populate_existing=True)
        )
        model = self.db.execute(stmt).scalar_one_or_none()
        return self.to_snapshot(model) if model else None

    def get_latest_cart_by_customer(self, customer_id: str) -> Cart | None:
        stmt = (
            select(CartModel)
            .where(CartModel.customer_id == customer_id)
            .order_by(CartModel.updated_at.desc())
            .limit(1)
            .options(selectinload(CartModel.items))
            .execution_options(populate_existing=True)
        )
        model = self.db.execute(stmt).scalar_one_or_none()
        return self.to_snapshot(model) if model else None

    # =====================================================
    # WRITE
    # =====================================================
    def create_cart(self, customer_id: str | None, restaurant_id: str | None) -> Cart:
        model = CartModel(
            id=str(uuid.uuid4()),
            customer_id=customer_id,
            restaurant_id=restaurant_id,
            status=CartStatus.ACTIVE.value,
            version=1,
            updated_at=datetime.now(timezone.utc),
        )
        self.db.add(model)
        self.db.commit()
        return self.get_cart(model.id)

    def save_cart(self, cart: Cart, expected_version: int) -> None:
        """
        Full overwrite of the cart header and lines.

        Optimistic locking: UPDATE ... WHERE id = :id AND version = :expected.
        Zero affected rows means someone else wrote first.
        """
        rowcount = self.update_cart_version(
            cart_id=cart.id,
            old_version=expected_version,
            new_data={
                "version": expected_version + 1,
                "restaurant_id": cart.restaurant_id,
                "status": cart.status.value,
                "subtotal": cart.subtotal,
                "tax": cart.tax,
                "delivery_fee": cart.delivery_fee,
                "total": cart.total,
                "updated_at": datetime.now(timezone.utc),
            },
        )
        if rowcount == 0:
            self.rollback()
            raise CartVersionConflict(cart.id, expected_version)

        # core statements, lines kept across saves reuse their ids
        self.db.execute(delete(CartItemModel).where(CartItemModel.cart_id == cart.id))
        rows = [
            {
                "id": line.id,
                "cart_id": cart.id,
                "position": position,
                "menu_item_id": line.menu_item_id,
                "name": line.name,
                "quantity": line.quantity,
                "unit_price": line.unit_price,
                "line_total": line.line_total,
                "options_json": options_to_json(line.options),
            }
            for position, line in enumerate(cart.items)
        ]
        if rows:
            self.db.execute(insert(CartItemModel), rows)

    def update_cart_version(self, cart_id: str, old_version: int, new_data: dict) -> int:
        stmt = (
            update(CartModel)
            .where(CartModel.id == cart_id, CartModel.version == old_version)
            .values(**new_data)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def mark_ordered(self, cart_id: str, expected_version: int) -> int:
        """Consumes an ACTIVE cart. Returns the number of rows changed (0 or 1)."""
        stmt = (
            update(CartModel)
            .where(
                CartModel.id == cart_id,
                CartModel.version == expected_version,
                CartModel.status == CartStatus.ACTIVE.value,
            )
            .values(
                status=CartStatus.ORDERED.value,
                version=expected_version + 1,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

    # =====================================================
    # MAPPING
    # =====================================================
    @staticmethod
    def to_snapshot(model: CartModel) -> Cart:
        return Cart(
            id=model.id,
            customer_id=model.customer_id,
            restaurant_id=model.restaurant_id,
            status=CartStatus(model.status),
            version=model.version,
            items=[
                CartLine(
                    id=i.id,
                    menu_item_id=i.menu_item_id,
                    name=i.name,
                    unit_price=i.unit_price,
                    quantity=i.quantity,
                    line_total=i.line_total,
                    options=options_from_json(i.options_json),
                )
                for i in model.items
            ],
            subtotal=model.subtotal,
            tax=model.tax,
            delivery_fee=model.delivery_fee,
            total=model.total,
            updated_at=model.updated_at,
        )
