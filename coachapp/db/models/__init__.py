from .user import User, UserRole
from .coach_profile import CoachProfile
from .coaching_session import CoachingSession, SessionStatus
from .payment import Payment, PaymentStatus
