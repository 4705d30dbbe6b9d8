"""Data access through one generic repository per model and a unit of work.

Views and services never call ``db.session.commit`` directly: they stage
changes through the repositories and flush them with ``UnitOfWork.save``.
"""
from . import db
from .models import (
    Category,
    Company,
    OrderDetail,
    OrderHeader,
    Product,
    ProductImage,
    ShoppingCart,
    User,
)


class Repository:
    def __init__(self, session, model):
        self.session = session
        self.model = model

    def _query(self, filters):
        return self.session.query(self.model).filter_by(**filters)

    def get(self, **filters):
        """First row matching ``filters`` or None."""
        return self._query(filters).first()

    def get_all(self, order_by=None, **filters):
        q = self._query(filters)
        if order_by is not None:
            q = q.order_by(order_by)
        return q.all()

    def add(self, obj):
        self.session.add(obj)
        return obj

    def update(self, obj, **fields):
        for key, value in fields.items():
            setattr(obj, key, value)
        self.session.add(obj)
        return obj

    def remove(self, obj):
        self.session.delete(obj)

    def remove_range(self, objs):
        for obj in list(objs):
            self.session.delete(obj)


class UnitOfWork:
    def __init__(self, session=None):
        self.session = session or db.session
        self.category = Repository(self.session, Category)
        self.product = Repository(self.session, Product)
        self.product_image = Repository(self.session, ProductImage)
        self.company = Repository(self.session, Company)
        self.user = Repository(self.session, User)
        self.shopping_cart = Repository(self.session, ShoppingCart)
        self.order_header = Repository(self.session, OrderHeader)
        self.order_detail = Repository(self.session, OrderDetail)

    def flush(self):
        self.session.flush()

    def save(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
