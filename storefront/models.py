from datetime import datetime, timezone
from sqlalchemy import func
from . import db
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from .constants import Role, OrderStatus, PaymentStatus


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(30), nullable=False)
    display_order = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    price = db.Column(db.Numeric(12, 2), nullable=False)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True)
    category = db.relationship("Category", backref="products")

    images = db.relationship(
        "ProductImage",
        backref="product",
        cascade="all, delete-orphan",
        order_by="ProductImage.id",
    )

    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        db.Index("ix_products_name", "name"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": str(self.price) if self.price is not None else None,
            "category": self.category.name if self.category else None,
            "images": [img.image_url for img in self.images],
        }


class ProductImage(db.Model):
    __tablename__ = "product_images"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    image_url = db.Column(db.String(300), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())


class Company(db.Model):
    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(160), nullable=False)
    street_address = db.Column(db.String(200))
    city = db.Column(db.String(100))
    state = db.Column(db.String(100))
    postal_code = db.Column(db.String(20))
    phone_number = db.Column(db.String(40))

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "streetAddress": self.street_address,
            "city": self.city,
            "state": self.state,
            "postalCode": self.postal_code,
            "phoneNumber": self.phone_number,
        }


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(160), unique=True, nullable=False)
    name = db.Column(db.String(160), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=Role.CUSTOMER.value)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=True)
    company = db.relationship("Company", backref="users")
    street_address = db.Column(db.String(200))
    city = db.Column(db.String(100))
    state = db.Column(db.String(100))
    postal_code = db.Column(db.String(20))
    phone_number = db.Column(db.String(40))
    lockout_end = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def has_role(self, *roles) -> bool:
        return self.role in {Role(r).value for r in roles}

    @property
    def is_locked(self) -> bool:
        if self.lockout_end is None:
            return False
        end = self.lockout_end
        # SQLite hands back naive datetimes
        if end.tzinfo is None:
            end = end.replace(tzinfo=timezone.utc)
        return end > datetime.now(timezone.utc)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "phoneNumber": self.phone_number,
            "role": self.role,
            "company": {"name": self.company.name} if self.company else None,
            "locked": self.is_locked,
        }


class ShoppingCart(db.Model):
    __tablename__ = "shopping_carts"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    product = db.relationship("Product")
    count = db.Column(db.Integer, nullable=False, default=1)


class OrderHeader(db.Model):
    __tablename__ = "order_headers"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    user = db.relationship("User", backref="orders")
    order_date = db.Column(db.DateTime(timezone=True), server_default=func.now())
    shipping_date = db.Column(db.DateTime(timezone=True), nullable=True)
    order_total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    order_status = db.Column(db.String(20), nullable=False, default=OrderStatus.PENDING.value)
    payment_status = db.Column(db.String(40), nullable=False, default=PaymentStatus.PENDING.value)
    tracking_number = db.Column(db.String(80))
    carrier = db.Column(db.String(80))
    payment_date = db.Column(db.DateTime(timezone=True), nullable=True)
    payment_due_date = db.Column(db.Date, nullable=True)

    name = db.Column(db.String(160), nullable=False)
    phone_number = db.Column(db.String(40), nullable=False, default="")
    street_address = db.Column(db.String(200), nullable=False)
    city = db.Column(db.String(100), nullable=False)
    state = db.Column(db.String(100), nullable=False)
    postal_code = db.Column(db.String(20), nullable=False)

    details = db.relationship("OrderDetail", backref="order_header", cascade="all, delete-orphan")

    __table_args__ = (
        db.Index("ix_order_headers_order_status", "order_status"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "phoneNumber": self.phone_number,
            "email": self.user.email if self.user else None,
            "orderStatus": self.order_status,
            "paymentStatus": self.payment_status,
            "orderTotal": str(self.order_total),
        }


class OrderDetail(db.Model):
    __tablename__ = "order_details"

    id = db.Column(db.Integer, primary_key=True)
    order_header_id = db.Column(
        db.Integer, db.ForeignKey("order_headers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    product = db.relationship("Product")
    count = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
