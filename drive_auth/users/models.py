# drive_auth/users/models.py
from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.sql import func

from drive_auth.core.database import Base


class User(Base):
    __tablename__ = "users"
    # Google "sub" claim
    id = Column(String(255), primary_key=True)
    email = Column(String(255), index=True)
    name = Column(String(255), nullable=True)
    photo = Column(String(1024), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Credential(Base):
    __tablename__ = "credentials"
    user_id = Column(String(255), ForeignKey("users.id"), primary_key=True)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    # Naive UTC, same convention as google.oauth2.credentials.Credentials.expiry
    expiry = Column(DateTime, nullable=True)
    scope = Column(Text, nullable=True)
    token_type = Column(String(32), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
