#ordering/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ordering.api.deps import get_cache, get_menu
from ordering.api.errors import http_error
from ordering.data.database import get_db
from ordering.domain.errors import OrderingError
from ordering.domain.schemas import (
    AddItemIn,
    Cart,
    CreateCartIn,
    CreateCartOut,
    UpdateItemIn,
)
from ordering.services.cache_service import CartCache
from ordering.services.cart_service import CartService
from ordering.services.menu_client import MenuClient

router = APIRouter(prefix="/carts", tags=["carts"])


def get_service(
    db: Session = Depends(get_db),
    cache: CartCache = Depends(get_cache),
    menu_client: MenuClient | None = Depends(get_menu),
) -> CartService:
    return CartService(db=db, cache=cache, menu_client=menu_client)


@router.post("/", response_model=CreateCartOut, status_code=201)
def create_cart(payload: CreateCartIn | None = None, svc: CartService = Depends(get_service)):
    payload = payload or CreateCartIn()
    try:
        cart = svc.create_cart(payload.customer_id, payload.restaurant_id)
    except OrderingError as e:
        raise http_error(e)
    return CreateCartOut(cart_id=cart.id)


@router.get("/by-customer/{customer_id}", response_model=Cart)
def get_cart_by_customer(customer_id: str, svc: CartService = Depends(get_service)):
    try:
        return svc.get_cart_by_customer(customer_id)
    except OrderingError as e:
        raise http_error(e)


@router.get("/{cart_id}", response_model=Cart)
def get_cart(cart_id: str, svc: CartService = Depends(get_service)):
    try:
        return svc.get_cart(cart_id)
    except OrderingError as e:
        raise http_error(e)


@router.post("/{cart_id}/items", response_model=Cart)
def add_item(cart_id: str, payload: AddItemIn, svc: CartService = Depends(get_service)):
    try:
        return svc.add_item(
            cart_id=cart_id,
            menu_item_id=payload.menu_item_id,
            name=payload.name,
            price=payload.price,
            quantity=payload.quantity,
            options=payload.options,
            restaurant_id=payload.restaurant_id,
            replace=payload.replace,
        )
    except OrderingError as e:
        raise http_error(e)


@router.put("/{cart_id}/items/{item_id}", response_model=Cart)
def update_item_quantity(cart_id: str, item_id: str, payload: UpdateItemIn, svc: CartService = Depends(get_service)):
    try:
        return svc.set_item_quantity(cart_id, item_id, payload.quantity)
    except OrderingError as e:
        raise http_error(e)


@router.delete("/{cart_id}/items/{item_id}", response_model=Cart)
def remove_item(cart_id: str, item_id: str, svc: CartService = Depends(get_service)):
    try:
        return svc.remove_item(cart_id, item_id)
    except OrderingError as e:
        raise http_error(e)


@router.delete("/{cart_id}", response_model=Cart)
def clear_cart(cart_id: str, svc: CartService = Depends(get_service)):
    try:
        return svc.clear(cart_id)
    except OrderingError as e:
        raise http_error(e)
