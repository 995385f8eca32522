# observador_app/persistence/database.py

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from observador_app.config.settings import settings

SQLALCHEMY_DATABASE_URL = settings.db_connection_string

# SQLite connections are shared across FastAPI's worker threads
connect_args = {"check_same_thread": False} if SQLALCHEMY_DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
