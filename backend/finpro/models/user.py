from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime
from finpro.database import Base

class User(Base):
    """Identity row owned by the auth collaborator; only read here."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    email = Column(String, unique=True, index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)  # account age for badges
