from .user import User  # noqa: F401
from .ministry import Ministry, ministry_pillars  # noqa: F401
from .ministry_form import FormAuditLog, FormDecision, MinistryForm  # noqa: F401
from .event_type import EventType  # noqa: F401
from .form_entry import FormEvent, FormGoal  # noqa: F401
from .notification import Notification  # noqa: F401
