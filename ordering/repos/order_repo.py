# ordering/repos/order_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ordering.data.models.order import OrderModel, OrderStatusHistoryModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        """Stages the order with its lines and history; caller commits."""
        self.db.add(order)
        return order

    def get_order(self, order_id: str) -> OrderModel | None:
        stmt = (
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .options(selectinload(OrderModel.items), selectinload(OrderModel.status_history))
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_orders_by_customer(self, customer_id: str) -> list[OrderModel]:
        stmt = (
            select(OrderModel)
            .where(OrderModel.customer_id == customer_id)
            .order_by(OrderModel.created_at.desc())
            .options(selectinload(OrderModel.items), selectinload(OrderModel.status_history))
        )
        return list(self.db.execute(stmt).scalars().all())

    def append_status(self, order: OrderModel, status: str, notes: str | None, changed_at) -> OrderStatusHistoryModel:
        # history only grows, existing entries are never touched
        entry = OrderStatusHistoryModel(order_id=order.id, status=status, notes=notes, changed_at=changed_at)
        order.status = status
        order.status_history.append(entry)
        return entry

    def get_customer_id(self, order_id: str) -> str | None:
        stmt = select(OrderModel.customer_id).where(OrderModel.id == order_id)
        return self.db.execute(stmt).scalar_one_or_none()
