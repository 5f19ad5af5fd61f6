from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from epharmacy.config.settings import get_settings

# Prefer an explicit DATABASE_URL (Postgres in prod, SQLite for quick local dev).
DATABASE_URL = get_settings().database_url


def _is_sqlite_url(url: str) -> bool:
    return url.startswith("sqlite:")


engine = create_engine(
    DATABASE_URL,
    echo=get_settings().db_echo,
    connect_args={"check_same_thread": False} if _is_sqlite_url(DATABASE_URL) else {},
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
