from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from flask import current_app
from .constants import OrderStatus, PaymentStatus, Role
from .errors import OrderStateError
from .models import OrderDetail, OrderHeader, ShoppingCart

ORDER_STATUS_FILTERS = {
    "pending": [PaymentStatus.DELAYED_PAYMENT.value],
    "inprocess": [OrderStatus.PROCESSING.value],
    "completed": [OrderStatus.SHIPPED.value],
    "approved": [OrderStatus.APPROVED.value],
}

SHIPPING_FIELDS = ("name", "phone_number", "street_address", "city", "state", "postal_code")


# --- Cart ---
def add_to_cart(uow, user_id, product_id, count: int) -> ShoppingCart:
    if count < 1:
        raise ValueError("Count must be at least 1")
    existing = uow.shopping_cart.get(user_id=user_id, product_id=product_id)
    if existing:
        existing.count += count
        cart = existing
    else:
        cart = uow.shopping_cart.add(ShoppingCart(user_id=user_id, product_id=product_id, count=count))
    uow.save()
    return cart


def change_cart_count(uow, cart: ShoppingCart, delta: int) -> None:
    """Add ``delta`` to a cart line; a line that reaches zero is removed."""
    if cart.count + delta <= 0:
        uow.shopping_cart.remove(cart)
    else:
        cart.count += delta
    uow.save()


def cart_lines(uow, user_id):
    return uow.shopping_cart.get_all(order_by=ShoppingCart.id, user_id=user_id)


def cart_total(lines) -> Decimal:
    return sum((Decimal(line.product.price) * line.count for line in lines), Decimal("0"))


# --- Orders ---
def place_order(uow, user, shipping: dict) -> OrderHeader:
    """Turn the user's cart into an order and empty the cart."""
    lines = cart_lines(uow, user.id)
    if not lines:
        raise OrderStateError("The shopping cart is empty")
    missing = [f for f in SHIPPING_FIELDS if not (shipping.get(f) or "").strip()]
    if missing:
        raise ValueError(f"Missing shipping fields: {', '.join(missing)}")

    header = OrderHeader(user_id=user.id, order_total=cart_total(lines))
    for f in SHIPPING_FIELDS:
        setattr(header, f, shipping[f].strip())
    if user.role == Role.COMPANY.value:
        header.order_status = OrderStatus.APPROVED.value
        header.payment_status = PaymentStatus.DELAYED_PAYMENT.value
    else:
        header.order_status = OrderStatus.PENDING.value
        header.payment_status = PaymentStatus.PENDING.value
    uow.order_header.add(header)
    uow.flush()

    for line in lines:
        uow.order_detail.add(
            OrderDetail(order_header_id=header.id, product_id=line.product_id, count=line.count, price=line.product.price)
        )
    uow.shopping_cart.remove_range(lines)
    uow.save()
    current_app.logger.info(f"[orders] order {header.id} placed by user {user.id} total={header.order_total}")
    return header


def update_order_details(uow, header: OrderHeader, fields: dict) -> OrderHeader:
    for f in SHIPPING_FIELDS:
        value = (fields.get(f) or "").strip()
        if value:
            setattr(header, f, value)
    for f in ("carrier", "tracking_number"):
        value = (fields.get(f) or "").strip()
        if value:
            setattr(header, f, value)
    uow.save()
    return header


def start_processing(uow, header: OrderHeader) -> OrderHeader:
    if header.order_status not in (OrderStatus.PENDING.value, OrderStatus.APPROVED.value):
        raise OrderStateError(f"Order {header.id} cannot start processing from {header.order_status}")
    header.order_status = OrderStatus.PROCESSING.value
    uow.save()
    current_app.logger.info(f"[orders] order {header.id} processing")
    return header


def ship_order(uow, header: OrderHeader, carrier: str, tracking_number: str) -> OrderHeader:
    if header.order_status != OrderStatus.PROCESSING.value:
        raise OrderStateError(f"Order {header.id} cannot be shipped from {header.order_status}")
    carrier = (carrier or "").strip()
    tracking_number = (tracking_number or "").strip()
    if not carrier or not tracking_number:
        raise ValueError("Carrier and tracking number are required")
    header.carrier = carrier
    header.tracking_number = tracking_number
    header.order_status = OrderStatus.SHIPPED.value
    header.shipping_date = datetime.now(timezone.utc)
    if header.payment_status == PaymentStatus.DELAYED_PAYMENT.value:
        days = current_app.config.get("DELAYED_PAYMENT_DAYS", 30)
        header.payment_due_date = date.today() + timedelta(days=days)
    uow.save()
    current_app.logger.info(f"[orders] order {header.id} shipped via {carrier}")
    return header


def cancel_order(uow, header: OrderHeader) -> OrderHeader:
    if header.order_status in (OrderStatus.SHIPPED.value, OrderStatus.CANCELLED.value, OrderStatus.REFUNDED.value):
        raise OrderStateError(f"Order {header.id} cannot be cancelled from {header.order_status}")
    if header.payment_status == PaymentStatus.APPROVED.value:
        header.order_status = OrderStatus.CANCELLED.value
        header.payment_status = OrderStatus.REFUNDED.value
    else:
        header.order_status = OrderStatus.CANCELLED.value
        header.payment_status = OrderStatus.CANCELLED.value
    uow.save()
    current_app.logger.info(f"[orders] order {header.id} cancelled ({header.payment_status})")
    return header


def list_orders(uow, user, status: str = "all"):
    q = uow.session.query(OrderHeader)
    if not user.has_role(Role.ADMIN, Role.EMPLOYEE):
        q = q.filter(OrderHeader.user_id == user.id)
    wanted = ORDER_STATUS_FILTERS.get((status or "all").lower())
    if wanted:
        if status.lower() == "pending":
            q = q.filter(OrderHeader.payment_status.in_(wanted))
        else:
            q = q.filter(OrderHeader.order_status.in_(wanted))
    return q.order_by(OrderHeader.id.desc()).all()
