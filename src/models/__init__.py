"""
ResQ SQLAlchemy Models
=============================

Central import point for all ORM models. Import ``Base`` from here for the
``create_all`` convenience used at startup and in tests.

Usage::

    from src.models import Base, ServiceRequest, ServiceProvider
"""

# -- Base & Mixins --
from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow

# -- Users --
from .user import STAFF_ROLES, UserProfile, UserRole

# -- Providers (garages) --
from .provider import ServiceProvider

# -- Staff --
from .staff import StaffMember, StaffRole

# -- Requests --
from .request import CANCELLATION_PENDING_LABEL, RequestStatus, ServiceRequest

# -- Drafts --
from .draft import DraftServiceRequest

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "utcnow",
    # Users
    "UserProfile",
    "UserRole",
    "STAFF_ROLES",
    # Providers
    "ServiceProvider",
    # Staff
    "StaffMember",
    "StaffRole",
    # Requests
    "ServiceRequest",
    "RequestStatus",
    "CANCELLATION_PENDING_LABEL",
    # Drafts
    "DraftServiceRequest",
]
