import logging
import os
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session, selectinload

from database import get_db
from models import Order, OrderItem, OrderStatus, Product, ProductVariant, Profile
from schemas import (
    CheckoutRequest,
    MessageResponse,
    OrderItemResponse,
    OrderResponse,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
    VariantCreate,
    VariantResponse,
    VariantUpdate,
)
from security import require_admin
from utils import log_admin_action

logger = logging.getLogger(__name__)
router = APIRouter()


def format_price(cents: int) -> str:
    symbol = os.environ.get("STORE_CURRENCY_SYMBOL", "₹")
    return f"{symbol}{cents / 100:,.2f}"


def effective_price(variant: ProductVariant) -> int:
    if variant.sale_price_in_cents is not None:
        return variant.sale_price_in_cents
    return variant.price_in_cents


def _variant_response(variant: ProductVariant) -> VariantResponse:
    return VariantResponse(
        id=variant.id,
        title=variant.title,
        sku=variant.sku,
        price_in_cents=variant.price_in_cents,
        sale_price_in_cents=variant.sale_price_in_cents,
        price_formatted=format_price(variant.price_in_cents),
        sale_price_formatted=format_price(variant.sale_price_in_cents) if variant.sale_price_in_cents is not None else None,
        manage_inventory=bool(variant.manage_inventory),
        inventory_quantity=variant.inventory_quantity if variant.manage_inventory else None,
        in_stock=not variant.manage_inventory or (variant.inventory_quantity or 0) > 0,
        image_url=variant.image_url,
    )


def _product_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=product.id,
        title=product.title,
        subtitle=product.subtitle,
        description=product.description,
        image_url=product.image_url,
        is_published=bool(product.is_published),
        variants=[_variant_response(variant) for variant in product.variants],
    )


def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        id=order.id,
        email=order.email,
        status=order.status,
        total_in_cents=order.total_in_cents,
        total_formatted=format_price(order.total_in_cents),
        items=[
            OrderItemResponse(
                variant_id=item.variant_id,
                product_title=item.variant.product.title,
                variant_title=item.variant.title,
                quantity=item.quantity,
                unit_price_in_cents=item.unit_price_in_cents,
                unit_price_formatted=format_price(item.unit_price_in_cents),
            )
            for item in order.items
        ],
        created_at=order.created_at,
    )


def _get_product_or_404(db: Session, product_id: int, published_only: bool = False) -> Product:
    query = db.query(Product).options(selectinload(Product.variants)).filter(Product.id == product_id)
    if published_only:
        query = query.filter(Product.is_published.is_(True))
    product = query.first()
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


def _get_order_or_404(db: Session, order_id: int) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


@router.get("/store/products", response_model=List[ProductResponse])
def list_products(db: Session = Depends(get_db)):
    products = (
        db.query(Product)
        .options(selectinload(Product.variants))
        .filter(Product.is_published.is_(True))
        .order_by(Product.id.asc())
        .all()
    )
    return [_product_response(product) for product in products]


@router.get("/store/products/{product_id}", response_model=ProductResponse)
def product_detail(product_id: int, db: Session = Depends(get_db)):
    return _product_response(_get_product_or_404(db, product_id, published_only=True))


@router.post("/store/checkout", response_model=OrderResponse)
def checkout(payload: CheckoutRequest, db: Session = Depends(get_db)):
    quantities: Dict[int, int] = {}
    for item in payload.items:
        quantities[item.variant_id] = quantities.get(item.variant_id, 0) + item.quantity

    variants = {
        variant.id: variant
        for variant in db.query(ProductVariant)
        .join(Product, Product.id == ProductVariant.product_id)
        .filter(ProductVariant.id.in_(list(quantities)), Product.is_published.is_(True))
        .with_for_update()
        .all()
    }
    missing = sorted(set(quantities) - set(variants))
    if missing:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown product variants: {', '.join(str(vid) for vid in missing)}")
    for variant_id, quantity in quantities.items():
        variant = variants[variant_id]
        if variant.manage_inventory and (variant.inventory_quantity or 0) < quantity:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Not enough stock for '{variant.title}'")

    order = Order(email=str(payload.email) if payload.email else None, status=OrderStatus.PENDING, total_in_cents=0)
    db.add(order)
    db.flush()
    total = 0
    for variant_id, quantity in quantities.items():
        variant = variants[variant_id]
        unit_price = effective_price(variant)
        if variant.manage_inventory:
            variant.inventory_quantity = (variant.inventory_quantity or 0) - quantity
        db.add(OrderItem(order_id=order.id, variant_id=variant.id, quantity=quantity, unit_price_in_cents=unit_price))
        total += unit_price * quantity
    order.total_in_cents = total
    db.commit()
    db.refresh(order)
    logger.info("Order %s created (%s items, %s)", order.id, len(quantities), format_price(total))
    return _order_response(order)


@router.post("/admin/store/orders/{order_id}/complete", response_model=OrderResponse)
def complete_order(order_id: int, request: Request, admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    order = _get_order_or_404(db, order_id)
    if order.status != OrderStatus.PENDING:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Order is already {order.status.value}")
    order.status = OrderStatus.PAID
    log_admin_action(db, admin, "complete_order", request.method, request.url.path, {"order_id": order.id}, commit=False)
    db.commit()
    db.refresh(order)
    return _order_response(order)


@router.post("/admin/store/orders/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(order_id: int, request: Request, admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    order = _get_order_or_404(db, order_id)
    if order.status != OrderStatus.PENDING:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Order is already {order.status.value}")
    for item in order.items:
        if item.variant.manage_inventory:
            item.variant.inventory_quantity = (item.variant.inventory_quantity or 0) + item.quantity
    order.status = OrderStatus.CANCELLED
    log_admin_action(db, admin, "cancel_order", request.method, request.url.path, {"order_id": order.id}, commit=False)
    db.commit()
    db.refresh(order)
    return _order_response(order)


@router.get("/admin/store/orders", response_model=List[OrderResponse])
def list_orders(admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    orders = db.query(Order).order_by(Order.id.desc()).all()
    return [_order_response(order) for order in orders]


@router.get("/admin/store/products", response_model=List[ProductResponse])
def admin_list_products(admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    products = db.query(Product).options(selectinload(Product.variants)).order_by(Product.id.asc()).all()
    return [_product_response(product) for product in products]


@router.post("/admin/store/products", response_model=ProductResponse)
def create_product(payload: ProductCreate, request: Request, admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    data = payload.model_dump(exclude={"variants"})
    product = Product(**data)
    db.add(product)
    db.flush()
    for variant in payload.variants:
        db.add(ProductVariant(product_id=product.id, **variant.model_dump()))
    log_admin_action(db, admin, "create_product", request.method, request.url.path, {"product_id": product.id}, commit=False)
    db.commit()
    return _product_response(_get_product_or_404(db, product.id))


@router.put("/admin/store/products/{product_id}", response_model=ProductResponse)
def update_product(product_id: int, payload: ProductUpdate, request: Request, admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    product = _get_product_or_404(db, product_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(product, field, value)
    log_admin_action(db, admin, "update_product", request.method, request.url.path, {"product_id": product.id}, commit=False)
    db.commit()
    return _product_response(_get_product_or_404(db, product.id))


@router.delete("/admin/store/products/{product_id}", response_model=MessageResponse)
def delete_product(product_id: int, request: Request, admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    product = _get_product_or_404(db, product_id)
    variant_ids = [variant.id for variant in product.variants]
    if variant_ids and db.query(OrderItem).filter(OrderItem.variant_id.in_(variant_ids)).first():
        product.is_published = False
        message = "Product has orders; it was unpublished instead"
    else:
        db.query(ProductVariant).filter(ProductVariant.product_id == product.id).delete(synchronize_session=False)
        db.query(Product).filter(Product.id == product.id).delete(synchronize_session=False)
        message = "Product deleted"
    log_admin_action(db, admin, "delete_product", request.method, request.url.path, {"product_id": product_id}, commit=False)
    db.commit()
    return MessageResponse(message=message)


@router.post("/admin/store/products/{product_id}/variants", response_model=ProductResponse)
def add_variant(product_id: int, payload: VariantCreate, request: Request, admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    product = _get_product_or_404(db, product_id)
    db.add(ProductVariant(product_id=product.id, **payload.model_dump()))
    log_admin_action(db, admin, "add_variant", request.method, request.url.path, {"product_id": product.id}, commit=False)
    db.commit()
    db.expire(product)
    return _product_response(_get_product_or_404(db, product.id))


@router.put("/admin/store/variants/{variant_id}", response_model=VariantResponse)
def update_variant(variant_id: int, payload: VariantUpdate, request: Request, admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    variant = db.query(ProductVariant).filter(ProductVariant.id == variant_id).first()
    if not variant:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Variant not found")
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(variant, field, value)
    log_admin_action(db, admin, "update_variant", request.method, request.url.path, {"variant_id": variant.id}, commit=False)
    db.commit()
    db.refresh(variant)
    return _variant_response(variant)


@router.delete("/admin/store/variants/{variant_id}", response_model=MessageResponse)
def delete_variant(variant_id: int, request: Request, admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    variant = db.query(ProductVariant).filter(ProductVariant.id == variant_id).first()
    if not variant:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Variant not found")
    if db.query(OrderItem).filter(OrderItem.variant_id == variant.id).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Variant has orders and cannot be deleted")
    db.query(ProductVariant).filter(ProductVariant.id == variant.id).delete(synchronize_session=False)
    log_admin_action(db, admin, "delete_variant", request.method, request.url.path, {"variant_id": variant_id}, commit=False)
    db.commit()
    return MessageResponse(message="Variant deleted")
