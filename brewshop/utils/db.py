# brewshop/utils/db.py

from sqlmodel import SQLModel, Session, create_engine

from brewshop.config import get_settings

database_url = get_settings().database_url

# check_same_thread=False is only needed for SQLite. It's not needed for other databases.
connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
engine = create_engine(database_url, connect_args=connect_args)


def create_db_and_tables():
    # Importing the models registers the tables on SQLModel.metadata
    import brewshop.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session():
    # Dependency to yield a database session
    with Session(engine) as session:
        yield session
