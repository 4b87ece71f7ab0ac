from app.models.base import Base
from app.models.user import User
from app.models.booking import Booking
from app.models.milestones import Milestone
from app.models.task import Task
from app.models.milestoneapproval import MilestoneApproval
from app.models.payment import Payment
from app.models.invoice import Invoice

__all__ = ["Base", "User", "Booking", "Milestone", "Task", "MilestoneApproval", "Payment", "Invoice"]
