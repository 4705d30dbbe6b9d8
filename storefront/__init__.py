import os
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from .config import Config
from flask_login import LoginManager

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
login_manager.login_view = "main.login"

DEFAULT_CATEGORIES = ["Action", "SciFi", "History"]


def seed_database(app):
    """Create default categories and the admin account when missing.

    Safe to call on every start; it does nothing until the tables exist.
    """
    from .constants import Role
    from .models import Category, User

    try:
        engine_inspector = inspect(db.engine)
        if engine_inspector.has_table("categories") and Category.query.count() == 0:
            for order, name in enumerate(DEFAULT_CATEGORIES, start=1):
                db.session.add(Category(name=name, display_order=order))
            db.session.commit()
            app.logger.info(f"[seed] default categories created: {', '.join(DEFAULT_CATEGORIES)}")
        if engine_inspector.has_table("users") and User.query.filter_by(role=Role.ADMIN.value).count() == 0:
            admin = User(
                email=app.config["ADMIN_EMAIL"],
                name=app.config["ADMIN_NAME"],
                role=Role.ADMIN.value,
            )
            admin.set_password(app.config["ADMIN_PASSWORD"])
            db.session.add(admin)
            db.session.commit()
            app.logger.info(f"[seed] admin user {admin.email} created")
    except SQLAlchemyError as exc:
        # A failed statement leaves the session aborted; later queries need a clean one
        db.session.rollback()
        app.logger.warning(f"[seed] skipped or failed: {exc}")


def _check_content_root(app):
    """Log where uploads will land and whether the process can write there."""
    root = app.config.get("CONTENT_ROOT")
    if not root:
        app.logger.warning("[content-root] CONTENT_ROOT is empty; product image uploads will be rejected")
        return
    images_dir = os.path.join(root, "images")
    probe = images_dir if os.path.isdir(images_dir) else root
    if os.path.isdir(probe) and not os.access(probe, os.W_OK):
        app.logger.warning(f"[content-root] {probe} is not writable by this process; uploads will fail")
    else:
        app.logger.info(f"[content-root] product images stored under {images_dir}")


def create_app(test_config=None):
    app = Flask(
        __name__,
        template_folder=os.path.join(os.path.dirname(__file__), "..", "templates"),
        static_folder=os.path.join(os.path.dirname(__file__), "..", "static"),
    )
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)
    if app.config.get("CONTENT_ROOT") is None:
        app.config["CONTENT_ROOT"] = app.static_folder

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    from .routes import bp as main_bp  # noqa: E402
    app.register_blueprint(main_bp)

    _check_content_root(app)
    with app.app_context():
        seed_database(app)

    from .models import User  # noqa: E402

    @login_manager.user_loader
    def load_user(user_id):
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    @app.template_filter("currency")
    def currency(value):
        from decimal import Decimal, InvalidOperation
        try:
            val = Decimal(str(value))
        except InvalidOperation:
            return value
        return f"$ {val:,.2f}"

    return app
