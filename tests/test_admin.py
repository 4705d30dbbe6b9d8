from storefront import db, seed_database
from storefront.constants import Role
from storefront.models import Category, Company, User
from storefront.repository import UnitOfWork
from conftest import ADMIN_EMAIL, login, make_company, make_product, make_user


# --- Seeding and repository ---
def test_seed_is_idempotent(ctx):
    seed_database(ctx)
    seed_database(ctx)
    assert Category.query.count() == 3
    assert User.query.filter_by(role=Role.ADMIN.value).count() == 1
    admin = User.query.filter_by(email=ADMIN_EMAIL).one()
    assert admin.check_password("secret")


def test_repository_crud(ctx):
    uow = UnitOfWork()
    company = uow.company.add(Company(name="Readers Club"))
    uow.save()
    assert uow.company.get(name="Readers Club").id == company.id

    uow.company.update(company, city="Lala land")
    uow.save()
    assert uow.company.get(id=company.id).city == "Lala land"

    uow.company.add(Company(name="Vivid Books"))
    uow.save()
    assert [c.name for c in uow.company.get_all(order_by=Company.name)] == ["Readers Club", "Vivid Books"]

    uow.company.remove_range(uow.company.get_all())
    uow.save()
    assert uow.company.get_all() == []


# --- Companies ---
def test_company_upsert_create_and_update(app, admin_client):
    resp = admin_client.post("/admin/companies/upsert", data={"id": "0", "name": "Tech Solution", "city": "Tech City"})
    assert resp.headers["Location"].endswith("/admin/companies")
    with app.app_context():
        company_id = Company.query.one().id

    admin_client.post(
        f"/admin/companies/upsert/{company_id}", data={"id": str(company_id), "name": "Tech Solutions"}
    )
    with app.app_context():
        company = db.session.get(Company, company_id)
        assert company.name == "Tech Solutions"
        assert company.city is None


def test_company_upsert_requires_name(app, admin_client):
    resp = admin_client.post("/admin/companies/upsert", data={"id": "0", "name": " "})
    assert resp.status_code == 200
    assert b"Name is required" in resp.data
    with app.app_context():
        assert Company.query.count() == 0


def test_company_api(app, admin_client):
    with app.app_context():
        company_id = make_company()
        user_id = make_user("buyer@corp.local", role=Role.COMPANY, company_id=company_id)
    listed = admin_client.get("/admin/companies/api").get_json()
    assert listed["data"][0]["name"] == "Tech Solution"

    assert admin_client.delete(f"/admin/companies/api/{company_id}").get_json()["success"] is True
    assert admin_client.delete(f"/admin/companies/api/{company_id}").get_json() == {
        "success": False,
        "message": "Error while deleting",
    }
    with app.app_context():
        assert db.session.get(User, user_id).company_id is None


# --- Categories ---
def test_category_validation_and_delete_guard(app, admin_client):
    resp = admin_client.post("/admin/categories/upsert", data={"name": "Poetry", "display_order": "0"})
    assert b"Display order must be between 1 and 100" in resp.data

    admin_client.post("/admin/categories/upsert", data={"name": "Poetry", "display_order": "4"})
    with app.app_context():
        category = Category.query.filter_by(name="Poetry").one()
        category_id = category.id
        make_product(category_id=category_id)

    resp = admin_client.post(f"/admin/categories/{category_id}/delete", follow_redirects=True)
    assert b"the category has products" in resp.data


# --- Users ---
def test_lock_unlock_blocks_login(app, admin_client):
    with app.app_context():
        user_id = make_user("ann@test.local")

    resp = admin_client.post("/admin/users/api/lock-unlock", json={"id": user_id})
    assert resp.get_json() == {"success": True, "message": "User locked"}
    assert login(app.test_client(), "ann@test.local").status_code == 403

    resp = admin_client.post("/admin/users/api/lock-unlock", json={"id": user_id})
    assert resp.get_json()["message"] == "User unlocked"
    assert login(app.test_client(), "ann@test.local").status_code == 302


def test_users_api_lists_roles(app, admin_client):
    with app.app_context():
        make_user("ann@test.local")
    data = admin_client.get("/admin/users/api").get_json()["data"]
    assert {(u["email"], u["role"]) for u in data} == {
        (ADMIN_EMAIL, "Admin"),
        ("ann@test.local", "Customer"),
    }


def test_company_role_requires_company(app, admin_client):
    with app.app_context():
        user_id = make_user("ann@test.local")
        company_id = make_company()

    admin_client.post(f"/admin/users/{user_id}/permissions", data={"role": "Company", "company_id": ""})
    with app.app_context():
        assert db.session.get(User, user_id).role == "Customer"

    admin_client.post(f"/admin/users/{user_id}/permissions", data={"role": "Company", "company_id": str(company_id)})
    with app.app_context():
        user = db.session.get(User, user_id)
        assert (user.role, user.company_id) == ("Company", company_id)

    admin_client.post(f"/admin/users/{user_id}/permissions", data={"role": "Employee", "company_id": str(company_id)})
    with app.app_context():
        user = db.session.get(User, user_id)
        assert (user.role, user.company_id) == ("Employee", None)


def test_unknown_role_is_rejected(app, admin_client):
    with app.app_context():
        user_id = make_user("ann@test.local")
    resp = admin_client.post(f"/admin/users/{user_id}/permissions", data={"role": "Root"}, follow_redirects=True)
    assert b"Unknown role Root" in resp.data


def test_register_and_duplicate_email(app):
    client = app.test_client()
    form = {"email": "new@test.local", "name": "New", "password": "pw", "confirm_password": "pw"}
    assert client.post("/register", data=form).status_code == 302
    assert app.test_client().post("/register", data=form).status_code == 400
    with app.app_context():
        assert User.query.filter_by(email="new@test.local").one().role == "Customer"
