from sqlmodel import Session, create_engine, SQLModel

from app import models  # noqa: F401  (registers tables on SQLModel.metadata)
from app.core.config import settings

connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)


def get_session():
    """FastAPI dependency to get database session."""
    with Session(engine) as session:
        yield session


def init_db():
    SQLModel.metadata.create_all(engine)
