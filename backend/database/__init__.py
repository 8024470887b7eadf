from .connection import (
    engine, AsyncSessionLocal, init_db, create_tables, build_engine, configure_sqlite, Base
)

# Import roster models to ensure they are registered with Base
from .roster_models import PendingDB, ManualDB, MemberDB, ExtraDB

__all__ = [
    'engine', 'AsyncSessionLocal', 'init_db', 'create_tables',
    'build_engine', 'configure_sqlite', 'Base',
    # Roster models
    'PendingDB', 'ManualDB', 'MemberDB', 'ExtraDB',
]
