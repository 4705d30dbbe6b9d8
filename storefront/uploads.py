import os
import shutil
import uuid
from typing import NamedTuple
from flask import current_app
from .errors import (
    ConfigurationError,
    DirectoryCreationError,
    FileTooLargeError,
    InvalidFormatError,
    PermissionDeniedError,
    UploadError,
    UploadIOError,
)
from .models import ProductImage

ALLOWED_PRODUCT_IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}
MAX_PRODUCT_IMAGE_SIZE = 5 * 1024 * 1024  # 5 MB
IMAGES_DIR = "images"
PRODUCTS_DIR = "products"


class StoragePaths(NamedTuple):
    images_root: str
    products_root: str
    product_dir: str


def _extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lstrip(".").lower()


def file_size(file_storage) -> int:
    """Byte length of an uploaded file; the stream is rewound afterwards."""
    stream = file_storage.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def product_dir_name(product_id) -> str:
    return f"product-{product_id}"


def resolve_storage_paths(content_root, product_id) -> StoragePaths:
    """Compute the image directories for a product.

    The images root and the products directory are created when missing; the
    product directory is only computed, the uploader creates it on first write.
    """
    if not content_root:
        raise ConfigurationError()
    images_root = os.path.join(content_root, IMAGES_DIR)
    products_root = os.path.join(images_root, PRODUCTS_DIR)
    for path in (images_root, products_root):
        if os.path.isdir(path):
            continue
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as exc:
            raise DirectoryCreationError(path, exc.strerror or str(exc)) from exc
        current_app.logger.info(f"[product-images] created directory {path}")
    return StoragePaths(images_root, products_root, os.path.join(products_root, product_dir_name(product_id)))


def validate_image_file(filename: str, size: int) -> None:
    ext = _extension(filename)
    if ext not in ALLOWED_PRODUCT_IMAGE_EXTENSIONS:
        raise InvalidFormatError(f".{ext}" if ext else "", ALLOWED_PRODUCT_IMAGE_EXTENSIONS)
    if size > MAX_PRODUCT_IMAGE_SIZE:
        raise FileTooLargeError(filename, size, MAX_PRODUCT_IMAGE_SIZE)


def image_url_for(product_id, unique_name: str) -> str:
    rel = os.path.join(IMAGES_DIR, PRODUCTS_DIR, product_dir_name(product_id), unique_name)
    return "/" + rel.replace("\\", "/")


class ProductImageUploader:
    """Stores uploaded files for one request and stages their ProductImage rows.

    Paths written so far are kept in ``written`` so an aborted request can
    remove them again with ``discard_written``.
    """

    def __init__(self, uow):
        self.uow = uow
        self.written = []

    def save(self, product_id, file_storage, product_dir: str) -> ProductImage:
        filename = file_storage.filename or ""
        target = product_dir
        try:
            if not os.path.isdir(product_dir):
                os.makedirs(product_dir, exist_ok=True)
            unique_name = f"{uuid.uuid4().hex}.{_extension(filename)}"
            target = os.path.join(product_dir, unique_name)
            file_storage.stream.seek(0)
            with open(target, "xb") as fh:
                self.written.append(target)
                file_storage.save(fh)
        except PermissionError as exc:
            current_app.logger.error(f"[product-images] permission denied on {target}: {exc}")
            raise PermissionDeniedError(target) from exc
        except OSError as exc:
            current_app.logger.error(f"[product-images] I/O error writing {target}: {exc}")
            raise UploadIOError(exc.strerror or str(exc)) from exc
        except Exception as exc:
            current_app.logger.error(f"[product-images] unexpected error uploading {filename}: {exc}")
            raise UploadError(filename, str(exc)) from exc

        image = ProductImage(product_id=product_id, image_url=image_url_for(product_id, unique_name))
        self.uow.product_image.add(image)
        current_app.logger.info(f"[product-images] stored {filename} as {target}")
        return image

    def discard_written(self):
        for path in self.written:
            try:
                os.remove(path)
                current_app.logger.info(f"[product-images] removed {path} after aborted upload")
            except FileNotFoundError:
                pass
            except OSError as exc:
                current_app.logger.warning(f"[product-images] could not remove {path}: {exc}")
        self.written = []


def image_file_path(content_root: str, image_url: str) -> str:
    """Filesystem path of a stored image given its public URL."""
    parts = [p for p in image_url.split("/") if p]
    return os.path.join(content_root, *parts)


def remove_product_directory(content_root, product_id) -> None:
    if not content_root:
        return
    path = os.path.join(content_root, IMAGES_DIR, PRODUCTS_DIR, product_dir_name(product_id))
    if os.path.isdir(path):
        shutil.rmtree(path)
        current_app.logger.info(f"[product-images] removed directory {path}")


def find_orphaned_images(content_root, known_urls) -> list:
    """Files under images/products that no ProductImage URL points to."""
    products_root = os.path.join(content_root, IMAGES_DIR, PRODUCTS_DIR)
    known = set(known_urls)
    orphans = []
    if not os.path.isdir(products_root):
        return orphans
    for dirpath, _dirnames, filenames in os.walk(products_root):
        for name in sorted(filenames):
            full = os.path.join(dirpath, name)
            rel = os.path.relpath(full, content_root)
            url = "/" + rel.replace("\\", "/")
            if url not in known:
                orphans.append(full)
    return sorted(orphans)
