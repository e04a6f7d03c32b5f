from .payment import Payment
from .session import (
    Session,
    SessionCreate,
    SessionDetail,
    SessionStatusUpdate,
    SessionEnvelope,
    SessionList,
    Availability,
)
