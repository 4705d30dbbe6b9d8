from datetime import date, timedelta
from decimal import Decimal
import pytest
from storefront import db
from storefront.constants import OrderStatus, PaymentStatus, Role, SESSION_CART
from storefront.errors import OrderStateError
from storefront.models import OrderHeader, ShoppingCart, User
from storefront.orders import (
    add_to_cart,
    cancel_order,
    cart_lines,
    cart_total,
    change_cart_count,
    list_orders,
    place_order,
    ship_order,
    start_processing,
)
from storefront.repository import UnitOfWork
from conftest import ADMIN_EMAIL, login, make_company, make_product, make_user

SHIPPING = {
    "name": "Ann Reader",
    "phone_number": "5550001",
    "street_address": "1 Main St",
    "city": "Springfield",
    "state": "IL",
    "postal_code": "62701",
}


def _order_for(email, role=Role.CUSTOMER, company_id=None):
    uow = UnitOfWork()
    user = db.session.get(User, make_user(email, role=role, company_id=company_id))
    add_to_cart(uow, user.id, make_product(name="Dune", price="10.00"), 2)
    add_to_cart(uow, user.id, make_product(name="Emma", price="2.50"), 1)
    return uow, user, place_order(uow, user, SHIPPING)


def test_add_to_cart_merges_lines(ctx):
    uow = UnitOfWork()
    user_id = make_user("ann@test.local")
    product_id = make_product()
    add_to_cart(uow, user_id, product_id, 1)
    add_to_cart(uow, user_id, product_id, 3)
    lines = cart_lines(uow, user_id)
    assert len(lines) == 1
    assert lines[0].count == 4
    assert cart_total(lines) == Decimal("50.00")


def test_add_to_cart_rejects_non_positive_count(ctx):
    with pytest.raises(ValueError):
        add_to_cart(UnitOfWork(), make_user("ann@test.local"), make_product(), 0)


def test_minus_to_zero_removes_line(ctx):
    uow = UnitOfWork()
    user_id = make_user("ann@test.local")
    cart = add_to_cart(uow, user_id, make_product(), 1)
    change_cart_count(uow, cart, -1)
    assert ShoppingCart.query.count() == 0


def test_customer_order_is_pending(ctx):
    _uow, user, header = _order_for("ann@test.local")
    assert header.order_status == OrderStatus.PENDING.value
    assert header.payment_status == PaymentStatus.PENDING.value
    assert header.order_total == Decimal("22.50")
    assert len(header.details) == 2
    assert ShoppingCart.query.filter_by(user_id=user.id).count() == 0


def test_company_order_uses_delayed_payment(ctx):
    _uow, _user, header = _order_for("buyer@corp.local", Role.COMPANY, make_company())
    assert header.order_status == OrderStatus.APPROVED.value
    assert header.payment_status == PaymentStatus.DELAYED_PAYMENT.value


def test_empty_cart_cannot_be_ordered(ctx):
    user = db.session.get(User, make_user("ann@test.local"))
    with pytest.raises(OrderStateError):
        place_order(UnitOfWork(), user, SHIPPING)


def test_missing_shipping_fields(ctx):
    uow = UnitOfWork()
    user = db.session.get(User, make_user("ann@test.local"))
    add_to_cart(uow, user.id, make_product(), 1)
    with pytest.raises(ValueError):
        place_order(uow, user, dict(SHIPPING, city=" "))


def test_ship_requires_processing_and_tracking(ctx):
    uow, _user, header = _order_for("buyer@corp.local", Role.COMPANY, make_company())
    with pytest.raises(OrderStateError):
        ship_order(uow, header, "UPS", "1Z")
    start_processing(uow, header)
    with pytest.raises(ValueError):
        ship_order(uow, header, "UPS", "")
    ship_order(uow, header, "UPS", "1Z999")
    assert header.order_status == OrderStatus.SHIPPED.value
    assert header.shipping_date is not None
    assert header.payment_due_date == date.today() + timedelta(days=30)


def test_cancel_refunds_approved_payment(ctx):
    uow, _user, header = _order_for("ann@test.local")
    header.payment_status = PaymentStatus.APPROVED.value
    cancel_order(uow, header)
    assert header.order_status == OrderStatus.CANCELLED.value
    assert header.payment_status == OrderStatus.REFUNDED.value


def test_cancel_unpaid_order(ctx):
    uow, _user, header = _order_for("ann@test.local")
    cancel_order(uow, header)
    assert header.payment_status == OrderStatus.CANCELLED.value
    with pytest.raises(OrderStateError):
        cancel_order(uow, header)


def test_list_orders_scopes_customers_and_filters_status(ctx):
    uow, ann, ann_order = _order_for("ann@test.local")
    _uow, _bob, bob_order = _order_for("bob@test.local")
    start_processing(uow, bob_order)
    admin = User.query.filter_by(email=ADMIN_EMAIL).one()

    assert [o.id for o in list_orders(uow, ann)] == [ann_order.id]
    assert {o.id for o in list_orders(uow, admin)} == {ann_order.id, bob_order.id}
    assert [o.id for o in list_orders(uow, admin, "inprocess")] == [bob_order.id]
    assert list_orders(uow, admin, "completed") == []


def test_checkout_through_routes(app):
    with app.app_context():
        make_user("ann@test.local")
        product_id = make_product(price="4.00")
    client = app.test_client()
    login(client, "ann@test.local")

    client.post(f"/products/{product_id}", data={"count": "3"})
    with client.session_transaction() as sess:
        assert sess[SESSION_CART] == 1
    assert b"Dune" in client.get("/cart").data

    resp = client.post("/cart/summary", data=SHIPPING)
    assert resp.status_code == 302
    with app.app_context():
        header = OrderHeader.query.one()
        assert header.order_total == Decimal("12.00")
    assert client.get(resp.headers["Location"]).status_code == 200
    with client.session_transaction() as sess:
        assert sess[SESSION_CART] == 0


def test_staff_ships_order_through_routes(app):
    with app.app_context():
        _uow, _user, header = _order_for("ann@test.local")
        order_id = header.id
    client = app.test_client()
    login(client, ADMIN_EMAIL)

    client.post(f"/orders/{order_id}/start-processing")
    resp = client.post(
        f"/orders/{order_id}/ship", data={"carrier": "UPS", "tracking_number": "1Z"}, follow_redirects=True
    )
    assert b"Order shipped successfully" in resp.data
    data = client.get("/orders/api?status=completed").get_json()
    assert [o["id"] for o in data["data"]] == [order_id]


def test_customer_cannot_see_other_orders(app):
    with app.app_context():
        _uow, _user, header = _order_for("ann@test.local")
        order_id = header.id
        make_user("bob@test.local")
    client = app.test_client()
    login(client, "bob@test.local")
    assert client.get(f"/orders/{order_id}").status_code == 404
    assert client.post(f"/orders/{order_id}/cancel").status_code == 302
