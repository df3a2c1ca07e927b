from backend.app.db.base_class import Base

# Import models to register metadata for Base.metadata.create_all in tests
from backend.app.models.user import User  # noqa: F401
from backend.app.models.customer import Customer  # noqa: F401
from backend.app.models.invoice import Invoice  # noqa: F401
from backend.app.models.invoice_item import InvoiceItem  # noqa: F401
from backend.app.models.payment import Payment  # noqa: F401
from backend.app.models.recurring_schedule import RecurringSchedule  # noqa: F401
from backend.app.models.exchange_rate import ExchangeRate  # noqa: F401
from backend.app.models.chat_run import ChatRun  # noqa: F401
