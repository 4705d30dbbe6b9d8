from enum import Enum


class Role(str, Enum):
    CUSTOMER = "Customer"
    COMPANY = "Company"
    ADMIN = "Admin"
    EMPLOYEE = "Employee"


class OrderStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    DELAYED_PAYMENT = "ApprovedForDelayedPayment"
    REJECTED = "Rejected"


SESSION_CART = "SessionShoppingCart"
