"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - SchoolId and UserId wrap UUIDs; tenant scoping is always expressed through SchoolId
    - Every closed vocabulary (roles, statuses, categories) is an Enum, never raw strings
    - Enum values are the exact strings stored in the DB and exchanged over JSON

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and compare against DB strings without converters
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

SchoolId = NewType("SchoolId", UUID)
UserId = NewType("UserId", UUID)


# ─── People ──────────────────────────────────────────────────────

class UserRole(str, Enum):
    """Account roles, from most to least privileged (see access_control)."""
    SUPER_ADMIN = "SUPER_ADMIN"
    SCHOOL_ADMIN = "SCHOOL_ADMIN"
    PRINCIPAL = "PRINCIPAL"
    VICE_PRINCIPAL = "VICE_PRINCIPAL"
    HEAD_TEACHER = "HEAD_TEACHER"
    TEACHER = "TEACHER"
    ACCOUNTANT = "ACCOUNTANT"
    LIBRARIAN = "LIBRARIAN"
    TRANSPORT_MANAGER = "TRANSPORT_MANAGER"
    HOSTEL_WARDEN = "HOSTEL_WARDEN"
    RECEPTIONIST = "RECEPTIONIST"
    PARENT = "PARENT"
    STUDENT = "STUDENT"


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class BloodGroup(str, Enum):
    A_POSITIVE = "A_POSITIVE"
    A_NEGATIVE = "A_NEGATIVE"
    B_POSITIVE = "B_POSITIVE"
    B_NEGATIVE = "B_NEGATIVE"
    AB_POSITIVE = "AB_POSITIVE"
    AB_NEGATIVE = "AB_NEGATIVE"
    O_POSITIVE = "O_POSITIVE"
    O_NEGATIVE = "O_NEGATIVE"


class StaffType(str, Enum):
    TEACHING = "TEACHING"
    NON_TEACHING = "NON_TEACHING"
    ADMINISTRATIVE = "ADMINISTRATIVE"
    SUPPORT = "SUPPORT"


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    HALF_DAY = "HALF_DAY"
    ON_LEAVE = "ON_LEAVE"


class LeaveStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class AdmissionStatus(str, Enum):
    """Admission pipeline: INQUIRY → ... → APPROVED → ADMITTED."""
    INQUIRY = "INQUIRY"
    PROSPECT = "PROSPECT"
    TEST_SCHEDULED = "TEST_SCHEDULED"
    TEST_COMPLETED = "TEST_COMPLETED"
    INTERVIEW_SCHEDULED = "INTERVIEW_SCHEDULED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    WAITLISTED = "WAITLISTED"
    ADMITTED = "ADMITTED"
    CANCELLED = "CANCELLED"


# ─── Finance ─────────────────────────────────────────────────────

class FeeType(str, Enum):
    TUITION = "TUITION"
    ADMISSION = "ADMISSION"
    EXAMINATION = "EXAMINATION"
    TRANSPORT = "TRANSPORT"
    HOSTEL = "HOSTEL"
    LIBRARY = "LIBRARY"
    SPORTS = "SPORTS"
    LABORATORY = "LABORATORY"
    UNIFORM = "UNIFORM"
    BOOKS = "BOOKS"
    OTHER = "OTHER"


class FeeFrequency(str, Enum):
    ONE_TIME = "ONE_TIME"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    HALF_YEARLY = "HALF_YEARLY"
    YEARLY = "YEARLY"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class PaymentMode(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    UPI = "UPI"
    CHEQUE = "CHEQUE"


# ─── Library ─────────────────────────────────────────────────────

class IssueStatus(str, Enum):
    ISSUED = "ISSUED"
    RETURNED = "RETURNED"
    OVERDUE = "OVERDUE"
    LOST = "LOST"
    DAMAGED = "DAMAGED"


# ─── Canteen & Marketplace ───────────────────────────────────────

class OrderStatus(str, Enum):
    """Canteen order lifecycle."""
    PENDING = "PENDING"
    PREPARING = "PREPARING"
    READY = "READY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class MarketplaceOrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class ProductCategory(str, Enum):
    UNIFORM = "UNIFORM"
    BOOKS = "BOOKS"
    STATIONERY = "STATIONERY"
    SPORTS = "SPORTS"
    OTHER = "OTHER"


class TransactionType(str, Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


# ─── Communication & Security ────────────────────────────────────

class AnnouncementPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class NotificationType(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    REMINDER = "REMINDER"


class BackupStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class BackupType(str, Enum):
    FULL = "FULL"
    INCREMENTAL = "INCREMENTAL"
    DIFFERENTIAL = "DIFFERENTIAL"


class ComplianceStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLIANT = "COMPLIANT"
    NON_COMPLIANT = "NON_COMPLIANT"
    EXPIRED = "EXPIRED"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
