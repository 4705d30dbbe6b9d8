import os
from dotenv import load_dotenv

# The project .env wins over variables already set globally
load_dotenv(override=True)


class Config:
    # Normalize DATABASE_URL ('postgres://' -> 'postgresql://')
    _db = os.getenv("DATABASE_URL", "sqlite:///storefront.db")
    if _db.startswith("postgres://"):
        _db = _db.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _db
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    # Web content root; uploaded images go to <CONTENT_ROOT>/images/products.
    # None falls back to the static folder in create_app.
    CONTENT_ROOT = os.getenv("CONTENT_ROOT")
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", str(50 * 1024 * 1024)))
    # Seeded admin account
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@storefront.local")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "Admin123*")
    ADMIN_NAME = os.getenv("ADMIN_NAME", "Store Admin")
    DELAYED_PAYMENT_DAYS = int(os.getenv("DELAYED_PAYMENT_DAYS", "30"))
