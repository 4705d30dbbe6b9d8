import os
from datetime import datetime, timedelta, timezone
from functools import wraps
from flask import (
    Blueprint,
    render_template,
    request,
    redirect,
    url_for,
    flash,
    send_from_directory,
    current_app,
    abort,
    session,
    jsonify,
)
from flask_login import login_user, logout_user, login_required, current_user
from sqlalchemy.exc import IntegrityError
from .catalog import UpsertStage, upsert_product
from .constants import Role, SESSION_CART
from .errors import OrderStateError
from .models import Category, Company, Product, User
from .orders import (
    add_to_cart,
    cart_lines,
    cart_total,
    cancel_order,
    change_cart_count,
    list_orders,
    place_order,
    ship_order,
    start_processing,
    update_order_details,
)
from .repository import UnitOfWork
from .uploads import IMAGES_DIR, image_file_path, remove_product_directory

bp = Blueprint("main", __name__)

LOCKOUT_PERIOD = timedelta(days=365 * 1000)


def _parse_int(value, default=None):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _refresh_cart_count(uow):
    session[SESSION_CART] = len(cart_lines(uow, current_user.id))


# --- Helpers ---
def roles_required(*roles):
    def decorator(f):
        @wraps(f)
        @login_required
        def wrapper(*args, **kwargs):
            if not current_user.has_role(*roles):
                flash("You do not have permission to access that page", "warning")
                return redirect(url_for("main.index"))
            return f(*args, **kwargs)
        return wrapper
    return decorator


admin_required = roles_required(Role.ADMIN)
staff_required = roles_required(Role.ADMIN, Role.EMPLOYEE)


# --- Public pages ---
@bp.route("/")
def index():
    uow = UnitOfWork()
    products = uow.product.get_all(order_by=Product.name)
    return render_template("index.html", products=products)


@bp.route("/products/<int:product_id>", methods=["GET", "POST"])
def product_detail(product_id):
    uow = UnitOfWork()
    product = uow.product.get(id=product_id)
    if product is None:
        abort(404)
    if request.method == "POST":
        if not current_user.is_authenticated:
            return current_app.login_manager.unauthorized()
        count = _parse_int(request.form.get("count"), 0)
        if count < 1 or count > 1000:
            flash("Count must be between 1 and 1000", "danger")
            return redirect(url_for("main.product_detail", product_id=product_id))
        add_to_cart(uow, current_user.id, product.id, count)
        _refresh_cart_count(uow)
        flash("Cart updated successfully", "success")
        return redirect(url_for("main.index"))
    return render_template("product_detail.html", product=product)


@bp.route("/images/<path:filename>")
def product_image_file(filename):
    root = current_app.config.get("CONTENT_ROOT")
    if not root:
        abort(404)
    return send_from_directory(os.path.join(root, IMAGES_DIR), filename)


# --- Auth ---
@bp.route("/login", methods=["GET", "POST"])
def login():
    if request.method == "POST":
        email = (request.form.get("email") or "").strip().lower()
        password = request.form.get("password") or ""
        user = User.query.filter_by(email=email).first()
        if user and user.is_locked:
            flash("This account is locked", "danger")
            return render_template("login.html"), 403
        if user and user.check_password(password):
            login_user(user)
            _refresh_cart_count(UnitOfWork())
            flash("Welcome back", "success")
            return redirect(request.args.get("next") or url_for("main.index"))
        flash("Invalid credentials", "danger")
    return render_template("login.html")


@bp.route("/register", methods=["GET", "POST"])
def register():
    if request.method == "POST":
        email = (request.form.get("email") or "").strip().lower()
        name = (request.form.get("name") or "").strip()
        password = request.form.get("password") or ""
        confirm = request.form.get("confirm_password") or ""
        if not email or not name or not password:
            flash("Email, name and password are required", "danger")
            return render_template("register.html"), 400
        if password != confirm:
            flash("Passwords do not match", "danger")
            return render_template("register.html"), 400
        user = User(
            email=email,
            name=name,
            role=Role.CUSTOMER.value,
            phone_number=(request.form.get("phone_number") or "").strip() or None,
            street_address=(request.form.get("street_address") or "").strip() or None,
            city=(request.form.get("city") or "").strip() or None,
            state=(request.form.get("state") or "").strip() or None,
            postal_code=(request.form.get("postal_code") or "").strip() or None,
        )
        user.set_password(password)
        uow = UnitOfWork()
        uow.user.add(user)
        try:
            uow.save()
        except IntegrityError:
            uow.rollback()
            flash("That email is already registered", "danger")
            return render_template("register.html"), 400
        login_user(user)
        flash("Account created", "success")
        return redirect(url_for("main.index"))
    return render_template("register.html")


@bp.route("/logout")
@login_required
def logout():
    logout_user()
    session.pop(SESSION_CART, None)
    return redirect(url_for("main.index"))


# --- Products (admin) ---
@bp.route("/admin/products")
@admin_required
def products_admin_list():
    products = UnitOfWork().product.get_all(order_by=Product.name)
    return render_template("admin/product_list.html", products=products)


def _product_form_values(product):
    if product is None:
        return {"id": 0, "name": "", "description": "", "price": "", "category_id": ""}
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description or "",
        "price": str(product.price),
        "category_id": product.category_id or "",
    }


@bp.route("/admin/products/upsert", methods=["GET", "POST"])
@bp.route("/admin/products/upsert/<int:product_id>", methods=["GET", "POST"])
@admin_required
def products_admin_upsert(product_id=0):
    uow = UnitOfWork()
    categories = uow.category.get_all(order_by=Category.display_order)
    if request.method == "POST":
        form = request.form.to_dict()
        form_id = _parse_int(form.get("id"), 0)
        result = upsert_product(
            uow,
            form,
            request.files.getlist("product_images"),
            current_app.config.get("CONTENT_ROOT"),
        )
        if result.ok:
            if result.images_added:
                flash(f"{result.images_added} image(s) uploaded", "info")
            flash(result.message, "success")
            return redirect(url_for("main.products_admin_list"))
        if result.failed_at == UpsertStage.VALIDATING_FORM:
            product = uow.product.get(id=form_id) if form_id else None
            return render_template(
                "admin/product_form.html",
                product=product,
                values=form,
                errors=result.errors,
                categories=categories,
            )
        flash(result.message, "danger")
        if result.failed_at == UpsertStage.PERSISTING_PRODUCT:
            return redirect(url_for("main.products_admin_list"))
        if form_id:
            return redirect(url_for("main.products_admin_upsert", product_id=form_id))
        return redirect(url_for("main.products_admin_upsert"))

    product = None
    if product_id:
        product = uow.product.get(id=product_id)
        if product is None:
            abort(404)
    return render_template(
        "admin/product_form.html",
        product=product,
        values=_product_form_values(product),
        errors={},
        categories=categories,
    )


@bp.route("/admin/products/images/<int:image_id>/delete", methods=["POST"])
@admin_required
def products_admin_image_delete(image_id):
    uow = UnitOfWork()
    image = uow.product_image.get(id=image_id)
    if image is None:
        abort(404)
    product_id = image.product_id
    path = None
    root = current_app.config.get("CONTENT_ROOT")
    if root:
        path = image_file_path(root, image.image_url)
    uow.product_image.remove(image)
    uow.save()
    if path and os.path.isfile(path):
        try:
            os.remove(path)
        except OSError as exc:
            current_app.logger.warning(f"[product-images] could not remove {path}: {exc}")
    flash("Image deleted", "success")
    return redirect(url_for("main.products_admin_upsert", product_id=product_id))


@bp.route("/admin/products/api")
@admin_required
def products_api_list():
    products = UnitOfWork().product.get_all(order_by=Product.name)
    return jsonify(data=[p.to_dict() for p in products])


@bp.route("/admin/products/api/<int:product_id>", methods=["DELETE"])
@admin_required
def products_api_delete(product_id):
    uow = UnitOfWork()
    product = uow.product.get(id=product_id)
    if product is None:
        return jsonify(success=False, message="Error while deleting")
    uow.product.remove(product)
    try:
        uow.save()
    except IntegrityError:
        uow.rollback()
        return jsonify(success=False, message="Product is referenced by existing orders")
    try:
        remove_product_directory(current_app.config.get("CONTENT_ROOT"), product_id)
    except OSError as exc:
        current_app.logger.warning(f"[product-images] could not remove images of product {product_id}: {exc}")
    return jsonify(success=True, message="Deleted Successfully")


# --- Categories (admin) ---
@bp.route("/admin/categories")
@admin_required
def categories_admin_list():
    categories = UnitOfWork().category.get_all(order_by=Category.display_order)
    return render_template("admin/category_list.html", categories=categories)


@bp.route("/admin/categories/upsert", methods=["GET", "POST"])
@bp.route("/admin/categories/upsert/<int:category_id>", methods=["GET", "POST"])
@admin_required
def categories_admin_upsert(category_id=0):
    uow = UnitOfWork()
    category = uow.category.get(id=category_id) if category_id else None
    if category_id and category is None:
        abort(404)
    if request.method == "POST":
        name = (request.form.get("name") or "").strip()
        display_order = _parse_int(request.form.get("display_order"))
        errors = {}
        if not name or len(name) > 30:
            errors["name"] = "Name is required (max 30 characters)"
        if display_order is None or not 1 <= display_order <= 100:
            errors["display_order"] = "Display order must be between 1 and 100"
        if errors:
            return render_template("admin/category_form.html", category=category, values=request.form, errors=errors)
        if category is None:
            uow.category.add(Category(name=name, display_order=display_order))
            flash("Category created successfully", "success")
        else:
            uow.category.update(category, name=name, display_order=display_order)
            flash("Category updated successfully", "success")
        uow.save()
        return redirect(url_for("main.categories_admin_list"))
    values = {"name": category.name, "display_order": category.display_order} if category else {}
    return render_template("admin/category_form.html", category=category, values=values, errors={})


@bp.route("/admin/categories/<int:category_id>/delete", methods=["POST"])
@admin_required
def categories_admin_delete(category_id):
    uow = UnitOfWork()
    category = uow.category.get(id=category_id)
    if category is None:
        abort(404)
    if category.products:
        flash("Cannot delete: the category has products.", "danger")
        return redirect(url_for("main.categories_admin_list"))
    uow.category.remove(category)
    uow.save()
    flash("Category deleted successfully", "success")
    return redirect(url_for("main.categories_admin_list"))


# --- Companies (admin) ---
COMPANY_FIELDS = ("name", "street_address", "city", "state", "postal_code", "phone_number")


@bp.route("/admin/companies")
@admin_required
def companies_admin_list():
    companies = UnitOfWork().company.get_all(order_by=Company.name)
    return render_template("admin/company_list.html", companies=companies)


@bp.route("/admin/companies/upsert", methods=["GET", "POST"])
@bp.route("/admin/companies/upsert/<int:company_id>", methods=["GET", "POST"])
@admin_required
def companies_admin_upsert(company_id=0):
    uow = UnitOfWork()
    if request.method == "POST":
        form_id = _parse_int(request.form.get("id"), 0)
        data = {f: (request.form.get(f) or "").strip() or None for f in COMPANY_FIELDS}
        if not data["name"]:
            return render_template(
                "admin/company_form.html", values=request.form, errors={"name": "Name is required"}
            )
        if form_id == 0:
            uow.company.add(Company(**data))
            message = "Company created successfully"
        else:
            company = uow.company.get(id=form_id)
            if company is None:
                abort(404)
            uow.company.update(company, **data)
            message = "Company updated successfully"
        uow.save()
        flash(message, "success")
        return redirect(url_for("main.companies_admin_list"))

    values = {"id": 0}
    if company_id:
        company = uow.company.get(id=company_id)
        if company is None:
            abort(404)
        values = {"id": company.id, **{f: getattr(company, f) or "" for f in COMPANY_FIELDS}}
    return render_template("admin/company_form.html", values=values, errors={})


@bp.route("/admin/companies/api")
@admin_required
def companies_api_list():
    companies = UnitOfWork().company.get_all(order_by=Company.name)
    return jsonify(data=[c.to_dict() for c in companies])


@bp.route("/admin/companies/api/<int:company_id>", methods=["DELETE"])
@admin_required
def companies_api_delete(company_id):
    uow = UnitOfWork()
    company = uow.company.get(id=company_id)
    if company is None:
        return jsonify(success=False, message="Error while deleting")
    for user in list(company.users):
        user.company_id = None
    uow.company.remove(company)
    uow.save()
    return jsonify(success=True, message="Deleted Successfully")


# --- Users (admin) ---
@bp.route("/admin/users")
@admin_required
def users_admin_list():
    return render_template("admin/user_list.html", users=UnitOfWork().user.get_all(order_by=User.email))


@bp.route("/admin/users/api")
@admin_required
def users_api_list():
    users = UnitOfWork().user.get_all(order_by=User.email)
    return jsonify(data=[u.to_dict() for u in users])


@bp.route("/admin/users/api/lock-unlock", methods=["POST"])
@admin_required
def users_api_lock_unlock():
    data = request.get_json(silent=True) or {}
    uow = UnitOfWork()
    user = uow.user.get(id=_parse_int(data.get("id"), 0))
    if user is None:
        return jsonify(success=False, message="Error while locking/unlocking")
    if user.id == current_user.id:
        return jsonify(success=False, message="You cannot lock your own account")
    if user.is_locked:
        user.lockout_end = None
        message = "User unlocked"
    else:
        user.lockout_end = datetime.now(timezone.utc) + LOCKOUT_PERIOD
        message = "User locked"
    uow.save()
    return jsonify(success=True, message=message)


@bp.route("/admin/users/<int:user_id>/permissions", methods=["GET", "POST"])
@admin_required
def users_admin_permissions(user_id):
    uow = UnitOfWork()
    user = uow.user.get(id=user_id)
    if user is None:
        abort(404)
    companies = uow.company.get_all(order_by=Company.name)
    if request.method == "POST":
        role_raw = request.form.get("role") or ""
        try:
            role = Role(role_raw)
        except ValueError:
            flash(f"Unknown role {role_raw}", "danger")
            return redirect(url_for("main.users_admin_permissions", user_id=user.id))
        company_id = None
        if role == Role.COMPANY:
            company_id = _parse_int(request.form.get("company_id"))
            if company_id is None or uow.company.get(id=company_id) is None:
                flash("A company user needs a company", "danger")
                return redirect(url_for("main.users_admin_permissions", user_id=user.id))
        uow.user.update(user, role=role.value, company_id=company_id)
        uow.save()
        flash("Permissions updated", "success")
        return redirect(url_for("main.users_admin_list"))
    return render_template("admin/user_permissions.html", user=user, companies=companies, roles=list(Role))


# --- Cart ---
@bp.route("/cart")
@login_required
def cart():
    lines = cart_lines(UnitOfWork(), current_user.id)
    return render_template("cart.html", lines=lines, total=cart_total(lines))


@bp.route("/cart/<int:cart_id>/<action>", methods=["POST"])
@login_required
def cart_change(cart_id, action):
    uow = UnitOfWork()
    line = uow.shopping_cart.get(id=cart_id, user_id=current_user.id)
    if line is None:
        abort(404)
    if action == "plus":
        change_cart_count(uow, line, 1)
    elif action == "minus":
        change_cart_count(uow, line, -1)
    elif action == "remove":
        change_cart_count(uow, line, -line.count)
    else:
        abort(404)
    _refresh_cart_count(uow)
    return redirect(url_for("main.cart"))


@bp.route("/cart/summary", methods=["GET", "POST"])
@login_required
def cart_summary():
    uow = UnitOfWork()
    if request.method == "POST":
        try:
            header = place_order(uow, current_user, request.form.to_dict())
        except (OrderStateError, ValueError) as exc:
            flash(str(exc), "danger")
            return redirect(url_for("main.cart_summary"))
        session[SESSION_CART] = 0
        return redirect(url_for("main.order_confirmation", order_id=header.id))
    lines = cart_lines(uow, current_user.id)
    return render_template("cart_summary.html", lines=lines, total=cart_total(lines), user=current_user)


@bp.route("/orders/<int:order_id>/confirmation")
@login_required
def order_confirmation(order_id):
    header = UnitOfWork().order_header.get(id=order_id, user_id=current_user.id)
    if header is None:
        abort(404)
    return render_template("order_confirmation.html", order=header)


# --- Orders ---
def _order_or_404(uow, order_id):
    header = uow.order_header.get(id=order_id)
    if header is None:
        abort(404)
    if header.user_id != current_user.id and not current_user.has_role(Role.ADMIN, Role.EMPLOYEE):
        abort(404)
    return header


@bp.route("/orders")
@login_required
def orders_list():
    status = request.args.get("status", "all")
    return render_template("orders_list.html", orders=list_orders(UnitOfWork(), current_user, status), status=status)


@bp.route("/orders/api")
@login_required
def orders_api_list():
    orders = list_orders(UnitOfWork(), current_user, request.args.get("status", "all"))
    return jsonify(data=[o.to_dict() for o in orders])


@bp.route("/orders/<int:order_id>")
@login_required
def order_detail(order_id):
    header = _order_or_404(UnitOfWork(), order_id)
    return render_template("order_detail.html", order=header)


@bp.route("/orders/<int:order_id>/update", methods=["POST"])
@staff_required
def order_update(order_id):
    uow = UnitOfWork()
    update_order_details(uow, _order_or_404(uow, order_id), request.form)
    flash("Order details updated successfully", "success")
    return redirect(url_for("main.order_detail", order_id=order_id))


def _order_transition(order_id, action, success_message):
    uow = UnitOfWork()
    header = _order_or_404(uow, order_id)
    try:
        action(uow, header)
    except (OrderStateError, ValueError) as exc:
        uow.rollback()
        flash(str(exc), "danger")
    else:
        flash(success_message, "success")
    return redirect(url_for("main.order_detail", order_id=order_id))


@bp.route("/orders/<int:order_id>/start-processing", methods=["POST"])
@staff_required
def order_start_processing(order_id):
    return _order_transition(order_id, start_processing, "Order is being processed")


@bp.route("/orders/<int:order_id>/ship", methods=["POST"])
@staff_required
def order_ship(order_id):
    carrier = request.form.get("carrier")
    tracking_number = request.form.get("tracking_number")
    return _order_transition(
        order_id,
        lambda uow, header: ship_order(uow, header, carrier, tracking_number),
        "Order shipped successfully",
    )


@bp.route("/orders/<int:order_id>/cancel", methods=["POST"])
@staff_required
def order_cancel(order_id):
    return _order_transition(order_id, cancel_order, "Order cancelled successfully")
