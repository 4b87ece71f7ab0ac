from app.constants.constants import UserRole
from app.models.booking import Booking
from app.models.user import User


def check_admin_role(user: User) -> bool:
    """Check if user holds the admin role."""
    return user.role == UserRole.admin


def can_access_booking(user: User, booking: Booking) -> bool:
    """Client, provider or admin may read and update a booking's work items."""
    return check_admin_role(user) or booking.is_party(user.user_id)


def can_manage_booking(user: User, booking: Booking) -> bool:
    """Only the provider or an admin may create or delete milestones and tasks."""
    return check_admin_role(user) or booking.provider_id == user.user_id
