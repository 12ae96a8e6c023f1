from .document import Area, LineItem, WorkOrder, WorkOrderDocument, WorkOrderHeader  # noqa: F401
from .errors import (  # noqa: F401
    GatewayError,
    GatewayRejection,
    SessionStateError,
    TransportFailure,
    ValidationError,
)
from .http_gateway import HttpPersistenceGateway  # noqa: F401
from .session import EditSession, EditSessionConfig, Notification, SessionState  # noqa: F401
from .totals import Totals, compute_totals, format_hours  # noqa: F401
from .validation import LineItemField  # noqa: F401
