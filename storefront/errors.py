"""Errors raised by the product image upload path.

Every error carries a ``message`` that is safe to show to the admin user; the
upsert workflow turns them into a flash notification.
"""


class ProductImageError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(ProductImageError):
    def __init__(self, message: str = "CONTENT_ROOT is not configured; images cannot be stored."):
        super().__init__(message)


class DirectoryCreationError(ProductImageError):
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not create directory {path}: {reason}")


class InvalidFormatError(ProductImageError):
    def __init__(self, extension: str, allowed):
        self.extension = extension
        self.allowed = sorted(allowed)
        shown = extension or "(none)"
        super().__init__(
            f"Invalid file format {shown}. Allowed formats: {', '.join('.' + e for e in self.allowed)}"
        )


class FileTooLargeError(ProductImageError):
    def __init__(self, filename: str, size: int, limit: int):
        self.filename = filename
        self.size = size
        self.limit = limit
        super().__init__(
            f"File {filename} is too large ({size} bytes). Maximum size is {limit // (1024 * 1024)} MB."
        )


class PermissionDeniedError(ProductImageError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Permission denied while writing to {path}. Check the upload directory permissions.")


class UploadIOError(ProductImageError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Could not save the image: {reason}")


class UploadError(ProductImageError):
    def __init__(self, filename: str, reason: str = ""):
        self.filename = filename
        self.reason = reason
        super().__init__(f"Unexpected error uploading {filename}.")


class OrderStateError(Exception):
    """An order transition that its current status does not allow."""
