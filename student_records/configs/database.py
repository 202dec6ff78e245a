from sqlmodel import SQLModel, create_engine, Session

from .settings import settings

DATABASE_URL = settings.DATABASE_URL

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, echo=settings.DB_ECHO, connect_args=connect_args)

def init_db(bind=None):
    # Import models so both tables are registered on the metadata
    from student_records import models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)

def get_db():
    with Session(engine) as session:
        yield session
