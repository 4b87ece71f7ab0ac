"""Constants for user roles, booking, milestone, task, payment and invoice statuses."""

import enum
from enum import Enum


class UserRole(str, Enum):
    """Enumeration of marketplace user roles."""

    client = "client"
    provider = "provider"
    admin = "admin"


class TaskStatus(str, Enum):
    """Enumeration of task statuses."""

    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"


class MilestoneStatus(str, Enum):
    """Enumeration of milestone statuses."""

    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"


class BookingStatus(str, Enum):
    """Enumeration of booking lifecycle statuses."""

    pending = "pending"
    approved = "approved"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class BookingPaymentStatus(str, Enum):
    """Payment state mirrored on the booking row."""

    pending = "pending"
    paid = "paid"
    failed = "failed"
    cancelled = "cancelled"
    refunded = "refunded"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class InvoiceStatus(str, enum.Enum):
    PAID = "paid"
    VOID = "void"


class ApprovalStatus(str, Enum):
    """Outcome of a milestone review."""

    approved = "approved"
    rejected = "rejected"


# Paystack webhook events the reconciler acts on
PAYSTACK_CHARGE_SUCCESS = "charge.success"
PAYSTACK_CHARGE_FAILED = "charge.failed"
PAYSTACK_INVOICE_PAYMENT_FAILED = "invoice.payment_failed"
PAYSTACK_REFUND_PROCESSED = "refund.processed"

TASK_STATUS_VALUES = [s.value for s in TaskStatus]
MILESTONE_STATUS_VALUES = [s.value for s in MilestoneStatus]

DEFAULT_MILESTONE_WEIGHT = 1.0
