import io
from decimal import Decimal
import pytest
from werkzeug.datastructures import FileStorage
from storefront import create_app, db, seed_database
from storefront.constants import Role
from storefront.models import Category, Company, Product, User

ADMIN_EMAIL = "admin@test.local"
PASSWORD = "secret"


@pytest.fixture
def content_root(tmp_path):
    return str(tmp_path / "wwwroot")


@pytest.fixture
def app(content_root):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "SECRET_KEY": "test",
        "CONTENT_ROOT": content_root,
        "ADMIN_EMAIL": ADMIN_EMAIL,
        "ADMIN_PASSWORD": PASSWORD,
        "ADMIN_NAME": "Test Admin",
    })
    with app.app_context():
        db.create_all()
        seed_database(app)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """Push an application context for tests that call services directly."""
    with app.app_context():
        yield app


def make_user(email, role=Role.CUSTOMER, company_id=None, password=PASSWORD):
    user = User(
        email=email,
        name=email.split("@")[0],
        role=Role(role).value,
        company_id=company_id,
        phone_number="5550001",
        street_address="1 Main St",
        city="Springfield",
        state="IL",
        postal_code="62701",
    )
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user.id


def make_product(name="Dune", price="12.50", category_id=None):
    product = Product(name=name, price=Decimal(price), category_id=category_id)
    db.session.add(product)
    db.session.commit()
    return product.id


def make_company(name="Tech Solution"):
    company = Company(name=name, city="Tech City")
    db.session.add(company)
    db.session.commit()
    return company.id


def first_category_id():
    return Category.query.order_by(Category.display_order).first().id


def upload(filename, size=16, content=None):
    data = content if content is not None else b"\x89" * size
    return FileStorage(stream=io.BytesIO(data), filename=filename, content_type="application/octet-stream")


def login(client, email, password=PASSWORD):
    return client.post("/login", data={"email": email, "password": password})


@pytest.fixture
def admin_client(app):
    client = app.test_client()
    login(client, ADMIN_EMAIL)
    return client
