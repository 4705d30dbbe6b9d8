from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from .errors import ConfigurationError, DirectoryCreationError, ProductImageError
from .models import Product
from .uploads import ProductImageUploader, file_size, resolve_storage_paths, validate_image_file

MAX_PRODUCT_PRICE = Decimal("1000000")


class UpsertStage(str, Enum):
    VALIDATING_FORM = "ValidatingForm"
    PERSISTING_PRODUCT = "PersistingProduct"
    RESOLVING_STORAGE = "ResolvingStorage"
    PROCESSING_FILES = "ProcessingFiles"
    COMMITTING = "Committing"
    DONE = "Done"
    ABORTED = "Aborted"


@dataclass
class UpsertResult:
    ok: bool
    stage: UpsertStage
    message: str = ""
    product: Optional[Product] = None
    errors: dict = field(default_factory=dict)
    images_added: int = 0
    failed_at: Optional[UpsertStage] = None

    @classmethod
    def done(cls, product, message, images_added=0):
        return cls(ok=True, stage=UpsertStage.DONE, message=message, product=product, images_added=images_added)

    @classmethod
    def aborted(cls, failed_at, message, product=None, errors=None):
        return cls(
            ok=False,
            stage=UpsertStage.ABORTED,
            message=message,
            product=product,
            errors=errors or {},
            failed_at=failed_at,
        )


def _parse_id(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def validate_product_form(form, uow):
    """Return ``(data, errors)`` for a submitted product form."""
    errors = {}
    name = (form.get("name") or "").strip()
    description = (form.get("description") or "").strip() or None
    price_raw = (form.get("price") or "").strip()
    category_raw = (form.get("category_id") or "").strip()

    if not name:
        errors["name"] = "Name is required"
    elif len(name) > 200:
        errors["name"] = "Name must be at most 200 characters"

    price = None
    if not price_raw:
        errors["price"] = "Price is required"
    else:
        try:
            price = Decimal(price_raw.replace(",", "."))
        except InvalidOperation:
            errors["price"] = "Invalid price"
        else:
            if not price.is_finite() or price <= 0 or price > MAX_PRODUCT_PRICE:
                errors["price"] = f"Price must be between 0 and {MAX_PRODUCT_PRICE}"

    category_id = None
    if category_raw:
        category_id = _parse_id(category_raw)
        if not category_id or uow.category.get(id=category_id) is None:
            errors["category_id"] = "Unknown category"

    data = {"name": name, "description": description, "price": price, "category_id": category_id}
    return data, errors


def upsert_product(uow, form, files, content_root) -> UpsertResult:
    """Insert or update a product and store its uploaded images in one commit.

    The product row is flushed before any file is handled so the product id is
    known for the storage path. Any failure after that rolls the whole unit of
    work back and removes the files this call already wrote.
    """
    product_id = _parse_id(form.get("id"))

    data, errors = validate_product_form(form, uow)
    if errors:
        return UpsertResult.aborted(UpsertStage.VALIDATING_FORM, "Please correct the errors below.", errors=errors)

    if product_id == 0:
        product = uow.product.add(Product(**data))
    else:
        product = uow.product.get(id=product_id)
        if product is None:
            return UpsertResult.aborted(UpsertStage.PERSISTING_PRODUCT, "Product not found")
        uow.product.update(product, **data)
    uow.flush()
    pid = product.id

    try:
        paths = resolve_storage_paths(content_root, pid)
    except (ConfigurationError, DirectoryCreationError) as exc:
        current_app.logger.error(f"[product-images] storage unavailable for product {pid}: {exc.message}")
        uow.rollback()
        return UpsertResult.aborted(
            UpsertStage.RESOLVING_STORAGE, exc.message, product=product if product_id else None
        )

    uploads = [f for f in (files or []) if f and getattr(f, "filename", None)]
    uploader = ProductImageUploader(uow)
    try:
        for upload in uploads:
            validate_image_file(upload.filename, file_size(upload))
            uploader.save(pid, upload, paths.product_dir)
    except ProductImageError as exc:
        current_app.logger.warning(f"[product-images] upload aborted for product {pid}: {exc.message}")
        uow.rollback()
        uploader.discard_written()
        return UpsertResult.aborted(
            UpsertStage.PROCESSING_FILES, exc.message, product=product if product_id else None
        )

    try:
        uow.save()
    except SQLAlchemyError as exc:
        current_app.logger.error(f"[product-images] commit failed for product {pid}: {exc}")
        uow.rollback()
        uploader.discard_written()
        return UpsertResult.aborted(UpsertStage.COMMITTING, "The product could not be saved to the database.")
    message = "Product created successfully" if product_id == 0 else "Product updated successfully"
    return UpsertResult.done(product, message, images_added=len(uploads))
