from sqlalchemy import Boolean, Column, String
from .base import Base


class Category(Base):
    __tablename__ = "category"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    parent_id = Column(String(36), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
