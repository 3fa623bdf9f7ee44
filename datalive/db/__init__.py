from datalive.db.database import (
    Base,
    DatabaseError,
    async_session_maker,
    check_database_health,
    close_db,
    engine,
    get_db,
    get_db_session,
    init_db,
)
from datalive.db.models import (
    ConversationModel,
    CredentialModel,
    DashboardModel,
    DiscoveredAPIModel,
    DocumentModel,
    ExecutionModel,
    InsightModel,
    ProjectModel,
    UserPreferenceModel,
)

__all__ = [
    "Base",
    "DatabaseError",
    "async_session_maker",
    "check_database_health",
    "close_db",
    "engine",
    "get_db",
    "get_db_session",
    "init_db",
    "ConversationModel",
    "CredentialModel",
    "DashboardModel",
    "DiscoveredAPIModel",
    "DocumentModel",
    "ExecutionModel",
    "InsightModel",
    "ProjectModel",
    "UserPreferenceModel",
]
