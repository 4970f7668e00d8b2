# ordering/api/routers/orders.py
import uuid
from typing import List

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from ordering.api.deps import get_cache, get_publisher
from ordering.api.errors import http_error
from ordering.data.database import get_db
from ordering.domain.errors import OrderingError
from ordering.domain.schemas import Order, PlaceOrderIn, PlaceOrderOut, UpdateOrderStatusIn
from ordering.services.cache_service import CartCache
from ordering.services.event_publisher import EventPublisher
from ordering.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(
    db: Session = Depends(get_db),
    cache: CartCache = Depends(get_cache),
    publisher: EventPublisher = Depends(get_publisher),
) -> OrderService:
    return OrderService(db=db, cache=cache, publisher=publisher)


@router.post("/", response_model=PlaceOrderOut, status_code=201)
def place_order(
    payload: PlaceOrderIn,
    idempotency_key: str | None = Header(None, alias="Idempotency-Key"),
    svc: OrderService = Depends(get_service),
):
    """
    Places an order from a cart. Retrying with the same Idempotency-Key
    returns the same order id. Without a key every call is a new attempt.
    """
    key = idempotency_key or payload.idempotency_key or str(uuid.uuid4())
    try:
        order_id = svc.place_order(
            cart_id=payload.cart_id,
            customer_id=payload.customer_id,
            delivery_address=payload.delivery_address,
            idempotency_key=key,
            special_instructions=payload.special_instructions,
        )
    except OrderingError as e:
        raise http_error(e)
    return PlaceOrderOut(order_id=order_id)


@router.get("/", response_model=List[Order])
def get_orders(customer_id: str = Query(...), svc: OrderService = Depends(get_service)):
    try:
        return svc.get_orders_by_customer(customer_id)
    except OrderingError as e:
        raise http_error(e)


@router.get("/{order_id}", response_model=Order)
def get_order(order_id: str, svc: OrderService = Depends(get_service)):
    try:
        return svc.get_order(order_id)
    except OrderingError as e:
        raise http_error(e)


@router.patch("/{order_id}/status")
def update_order_status(order_id: str, payload: UpdateOrderStatusIn, svc: OrderService = Depends(get_service)):
    try:
        updated = svc.update_order_status(order_id, payload.status, payload.notes)
    except OrderingError as e:
        raise http_error(e)
    if not updated:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    return {"ok": True}
