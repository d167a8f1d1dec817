"""
ORM model backing the SQL document store.
"""

from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import Column, Integer, String, Text, UniqueConstraint

class Base(DeclarativeBase):
    pass

class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("collection", "doc_id", name="uq_documents_collection_doc_id"),)

    seq        = Column(Integer, primary_key=True, autoincrement=True)
    collection = Column(String(64), nullable=False, index=True)
    doc_id     = Column(String(24), nullable=False)   # ObjectId hex
    body       = Column(Text, nullable=False)         # MongoDB extended JSON
