from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from finpro.core.config import settings
import os

db_url = settings.DATABASE_URL

# SQLAlchemy requires the postgresql:// scheme
if db_url.startswith("postgres://"):
    db_url = db_url.replace("postgres://", "postgresql://", 1)

if db_url.startswith("sqlite"):
    if "./" in db_url:
        # Relative SQLite files live in backend/
        base_dir = os.path.dirname(os.path.abspath(__file__))
        backend_dir = os.path.dirname(base_dir)
        db_file = db_url.replace("sqlite:///./", "")
        db_url = f"sqlite:///{os.path.join(backend_dir, db_file)}"

    if db_url in ("sqlite://", "sqlite:///:memory:"):
        # In-memory databases must share one connection across sessions
        engine = create_engine(
            db_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(db_url, connect_args={"check_same_thread": False})
else:
    engine = create_engine(db_url, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
