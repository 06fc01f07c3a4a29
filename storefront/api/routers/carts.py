# storefront/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.schemas import (
    AddItemIn,
    UpdateItemIn,
    RemoveItemIn,
    CartResponse,
)
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session = Depends(get_db)) -> CartService:
    return CartService(db)


@router.get("/{session_id}", response_model=CartResponse)
def get_cart(session_id: str, svc: CartService = Depends(get_service)):
    return {"data": svc.get_cart(session_id)}


@router.post("/{session_id}/add", response_model=CartResponse)
def add_item(session_id: str, payload: AddItemIn, svc: CartService = Depends(get_service)):
    cart = svc.add_item(session_id, payload.product, payload.size, payload.quantity)
    return {"message": "Item added to cart successfully", "applied": True, "data": cart}


@router.put("/{session_id}/update", response_model=CartResponse)
def update_item(session_id: str, payload: UpdateItemIn, svc: CartService = Depends(get_service)):
    cart, applied = svc.update_quantity(session_id, payload.product_id, payload.size, payload.quantity)
    message = "Item quantity updated successfully" if applied else "Item not found in cart"
    return {"message": message, "applied": applied, "data": cart}


@router.delete("/{session_id}/remove", response_model=CartResponse)
def remove_item(session_id: str, payload: RemoveItemIn, svc: CartService = Depends(get_service)):
    cart, applied = svc.remove_item(session_id, payload.product_id, payload.size)
    message = "Item removed from cart successfully" if applied else "Item not found in cart"
    return {"message": message, "applied": applied, "data": cart}


@router.delete("/{session_id}/clear", response_model=CartResponse)
def clear_cart(session_id: str, svc: CartService = Depends(get_service)):
    return {"message": "Cart cleared successfully", "applied": True, "data": svc.clear_cart(session_id)}
