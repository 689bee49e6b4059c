"""Document store interface and the bundled SQLAlchemy backend."""

from .base import SERVER_TIMESTAMP, DocumentSnapshot, DocumentStore, Subscription
from .sql import SqlDocumentStore, create_sql_engine

ORDERS = "orders"
MENU = "menu"
SETTINGS = "settings"
SETTINGS_DOC = "app"
STAFF = "staff"
ACTIVITY_LOGS = "activityLogs"

__all__ = [
    "SERVER_TIMESTAMP",
    "DocumentSnapshot",
    "DocumentStore",
    "Subscription",
    "SqlDocumentStore",
    "create_sql_engine",
    "ORDERS",
    "MENU",
    "SETTINGS",
    "SETTINGS_DOC",
    "STAFF",
    "ACTIVITY_LOGS",
]
