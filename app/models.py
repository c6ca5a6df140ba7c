"""
SQLAlchemy ORM Models for the attendance log

Defines the analysis_records table:
CREATE TABLE analysis_records (
    id INTEGER PRIMARY KEY,
    name TEXT,
    gender TEXT,
    gender_probability FLOAT,
    emotion TEXT,
    timestamp TEXT,
    latitude FLOAT,
    longitude FLOAT,
    confidence FLOAT,
    created_at TIMESTAMP DEFAULT NOW()
);
"""
from datetime import datetime
from sqlalchemy import Column, Integer, Float, DateTime, Text

from app.database import Base


class AnalysisRecordDB(Base):
    """
    SQLAlchemy model for analysis_records table.

    One immutable row per registration or recognition event. Rows are only
    ever inserted; the auto-increment id gives the append order.
    """
    __tablename__ = "analysis_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=True, index=True)
    gender = Column(Text, nullable=True)
    gender_probability = Column(Float, nullable=True)
    emotion = Column(Text, nullable=True)
    # Client-supplied event time, stored as given
    timestamp = Column(Text, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    confidence = Column(Float, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<AnalysisRecordDB(id={self.id}, name='{self.name}', emotion='{self.emotion}')>"
