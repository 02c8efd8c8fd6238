"""Database configuration and initialization."""
from sqlalchemy import create_engine, text
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Create SQLAlchemy base
Base = declarative_base()

# Global session and engine
engine = None
db_session = None


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    if database_uri.startswith('sqlite') and make_url(database_uri).database in (None, '', ':memory:'):
        # In-memory database only exists on one connection; tests only
        engine = create_engine(
            database_uri,
            echo=app.config.get('SQLALCHEMY_ECHO', False),
            connect_args={'check_same_thread': False},
            poolclass=StaticPool
        )
    elif database_uri.startswith('sqlite'):
        # File database: pooled connections, one per session
        engine = create_engine(
            database_uri,
            echo=app.config.get('SQLALCHEMY_ECHO', False),
            connect_args={'check_same_thread': False}
        )
    else:
        engine = create_engine(
            database_uri,
            echo=app.config.get('SQLALCHEMY_ECHO', False),
            pool_pre_ping=True,  # Enable connection health checks
            pool_size=10,
            max_overflow=20
        )

    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, bind=engine)
    )

    Base.query = db_session.query_property()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_all():
    """Create every table registered on Base."""
    import shop.models  # noqa: F401  (registers mappers)
    Base.metadata.create_all(bind=engine)


def drop_all():
    """Drop every table registered on Base."""
    Base.metadata.drop_all(bind=engine)


def ping() -> bool:
    """Check the database answers a trivial query."""
    with engine.connect() as conn:
        conn.execute(text('SELECT 1'))
    return True


def get_session():
    """Get database session."""
    return db_session
