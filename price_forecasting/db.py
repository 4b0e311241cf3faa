from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, scoped_session

from price_forecasting.config import config
from price_forecasting.exceptions import ConfigError, DatabaseError

def configure_sqlite(engine):
    """Let SQLAlchemy own SQLite transactions so SAVEPOINTs behave.

    pysqlite issues its own BEGIN lazily, which breaks nested transactions.
    Transactions start with BEGIN IMMEDIATE so concurrent writers queue on
    the busy timeout instead of failing when they upgrade a read lock.
    """
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine

def create_db_engine(connection_string, busy_timeout=None, **engine_kwargs):
    """Create an engine with the settings the batch workers rely on.

    Args:
        connection_string: SQLAlchemy database URL
        busy_timeout: Seconds a SQLite connection waits for a locked database
        engine_kwargs: Extra keyword arguments for create_engine

    Returns:
        SQLAlchemy engine
    """
    is_sqlite = connection_string.startswith('sqlite')

    if is_sqlite:
        if busy_timeout is None:
            busy_timeout = config.get_float('DATABASE', 'busy_timeout', 60.0)
        connect_args = engine_kwargs.setdefault('connect_args', {})
        connect_args.setdefault('check_same_thread', False)
        connect_args.setdefault('timeout', busy_timeout)
    else:
        # Connection pool settings
        engine_kwargs.setdefault('pool_size', config.get_int('DATABASE', 'pool_size', 10))
        engine_kwargs.setdefault('max_overflow', config.get_int('DATABASE', 'max_overflow', 20))
        engine_kwargs.setdefault('pool_timeout', config.get_int('DATABASE', 'pool_timeout', 30))
        engine_kwargs.setdefault('pool_recycle', config.get_int('DATABASE', 'pool_recycle', 1800))

    engine = create_engine(connection_string, **engine_kwargs)
    if is_sqlite:
        configure_sqlite(engine)
    return engine

class Database:
    """Database connection manager for the price forecasting engine."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Database, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the database connection if not already initialized."""
        if self._initialized:
            return

        self._engine = None
        self._session_factory = None
        self._session = None
        self._initialized = True

    def initialize(self, connection_string=None, **engine_kwargs):
        """Initialize database connection.

        Args:
            connection_string: Optional database URL. If not provided,
                               the DATABASE/url setting is used.
            engine_kwargs: Extra keyword arguments for create_engine
        """
        if connection_string is None:
            connection_string = config.get_db_url()
        if not connection_string:
            raise ConfigError("No database URL configured")

        engine_kwargs.setdefault('echo', config.get_boolean('DATABASE', 'echo', False))
        self._engine = create_db_engine(connection_string, **engine_kwargs)

        self._session_factory = sessionmaker(bind=self._engine)
        # Thread-local sessions: every batch worker gets its own
        self._session = scoped_session(self._session_factory)

    def create_all_tables(self):
        """Create all tables defined in the models."""
        from price_forecasting.models import Base
        Base.metadata.create_all(self.engine)

    def drop_all_tables(self):
        """Drop all tables from the database."""
        from price_forecasting.models import Base
        Base.metadata.drop_all(self.engine)

    @property
    def session(self):
        """Get the thread-local session registry."""
        if self._session is None:
            self.initialize()
        return self._session

    @property
    def engine(self):
        """Get the database engine."""
        if self._engine is None:
            self.initialize()
        return self._engine

    @contextmanager
    def session_scope(self):
        """Provide a transactional scope around a series of operations.

        Database errors are re-raised as DatabaseError after rollback.
        """
        session = self.session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise DatabaseError(f"Database operation failed: {str(e)}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            self.session.remove()

# Global database instance
db = Database()

@contextmanager
def session_scope():
    """Session scope context manager."""
    with db.session_scope() as session:
        yield session
