"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - School is the tenant root; every tenant-owned table carries school_id,
      except rows owned through a parent (guardians, order items, stops)

Design Decisions:
    - One file per functional area for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from app.models.school import School, Branch, AcademicYear  # noqa: F401
from app.models.user import User, CustomRole  # noqa: F401
from app.models.academic import SchoolClass, Section, Subject  # noqa: F401
from app.models.student import Student, Guardian  # noqa: F401
from app.models.staff import Staff, StaffAttendance, LeaveRequest, Payroll  # noqa: F401
from app.models.admission import Admission  # noqa: F401
from app.models.finance import Fee, FeePayment, Expense  # noqa: F401
from app.models.library import Book, LibraryIssue  # noqa: F401
from app.models.transport import TransportRoute, RouteStop, Vehicle, Driver  # noqa: F401
from app.models.canteen import (  # noqa: F401
    MenuItem, CanteenOrder, CanteenOrderItem, SmartWallet, WalletTransaction,
)
from app.models.marketplace import (  # noqa: F401
    Product, MarketplaceOrder, MarketplaceOrderItem,
)
from app.models.communication import (  # noqa: F401
    Announcement, Event, Message, Notification,
)
from app.models.audit import AuditLog, DataBackup, ComplianceRecord  # noqa: F401
