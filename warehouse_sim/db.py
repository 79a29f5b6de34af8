import time
import urllib.parse
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import sessionmaker, scoped_session

from warehouse_sim.config import config
from warehouse_sim.exceptions import DatabaseError, TransactionTimeoutError

class Database:
    """Database connection manager for the Warehouse Sales Simulation engine."""

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

    def initialize(self, connection_string=None):
        """Initialize database connection.

        Args:
            connection_string: Optional database connection string.
                              If not provided, will use configuration.
        """
        if self._session is not None:
            self._session.remove()
        if self._engine is not None:
            self._engine.dispose()

        if connection_string is None:
            engine = config.get('DATABASE', 'engine', 'postgresql')
            if engine.startswith('sqlite'):
                connection_string = config.get_db_url()
            else:
                username = config.get('DATABASE', 'username', 'postgres')
                password = config.get('DATABASE', 'password', 'postgres')
                host = config.get('DATABASE', 'host', 'localhost')
                port = config.get('DATABASE', 'port', '5432')
                database = config.get('DATABASE', 'database', 'warehouse_sim')

                # URL encode the password to handle special characters
                password = urllib.parse.quote_plus(password)

                connection_string = f"{engine}://{username}:{password}@{host}:{port}/{database}"

        echo = config.get_boolean('DATABASE', 'echo', False)

        engine_kwargs = {'echo': echo}
        if not connection_string.startswith('sqlite'):
            # Connection pool settings only apply to server databases
            engine_kwargs.update(
                pool_size=config.get_int('DATABASE', 'pool_size', 10),
                max_overflow=config.get_int('DATABASE', 'max_overflow', 20),
                pool_timeout=config.get_int('DATABASE', 'pool_timeout', 30),
                pool_recycle=config.get_int('DATABASE', 'pool_recycle', 1800)
            )

        try:
            self._engine = create_engine(connection_string, **engine_kwargs)
        except (ArgumentError, ImportError) as e:
            self._engine = None
            self._session = None
            raise DatabaseError(f"Cannot create database engine: {e}")
        self._session_factory = sessionmaker(bind=self._engine)
        self._session = scoped_session(self._session_factory)

    def create_all_tables(self):
        """Create all tables defined in the models."""
        from warehouse_sim.models import Base
        Base.metadata.create_all(self.engine)

    def drop_all_tables(self):
        """Drop all tables from the database."""
        from warehouse_sim.models import Base
        Base.metadata.drop_all(self.engine)

    @property
    def session(self):
        """Get the current database session."""
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
    def session_scope(self, timeout_seconds=None):
        """Provide a transactional scope around a series of operations.

        Args:
            timeout_seconds: Optional ceiling for the whole unit. Work that
                runs past it is rolled back instead of committed.
        """
        session = self.session()
        started = time.monotonic()
        try:
            if timeout_seconds and session.get_bind().dialect.name == 'postgresql':
                session.execute(text(f"SET LOCAL statement_timeout = {int(timeout_seconds * 1000)}"))
            yield session
            if timeout_seconds is not None:
                elapsed = time.monotonic() - started
                if elapsed > timeout_seconds:
                    raise TransactionTimeoutError(
                        f"Transaction exceeded {timeout_seconds}s ceiling ({elapsed:.1f}s)",
                        details={'elapsed_seconds': elapsed, 'timeout_seconds': timeout_seconds}
                    )
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

# Global database instance
db = Database()

def get_session():
    """Get current database session."""
    return db.session()

@contextmanager
def session_scope(timeout_seconds=None):
    """Session scope context manager."""
    with db.session_scope(timeout_seconds=timeout_seconds) as session:
        yield session
