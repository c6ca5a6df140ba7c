"""
Analysis Records Repository

Database operations for the analysis_records table using SQLAlchemy async.
The table is append-only: records are created and read, never changed.
"""
from typing import Dict, Optional, List
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.models import AnalysisRecordDB
from app.schemas import AnalysisRecord, AttendanceEntry, Location

logger = logging.getLogger(__name__)


class AnalysisRecordRepository:
    """
    Repository class for analysis_records database operations.

    All methods are async and require an AsyncSession.
    """

    @staticmethod
    async def create(
        session: AsyncSession,
        name: Optional[str],
        gender: Optional[str] = None,
        gender_probability: Optional[float] = None,
        emotion: Optional[str] = None,
        timestamp: Optional[str] = None,
        location: Optional[Location] = None,
        confidence: Optional[float] = None
    ) -> AnalysisRecordDB:
        """
        Append a new analysis record.

        Args:
            session: Database session
            name: Identity the event concerns
            gender: Gender estimated by the client
            gender_probability: Confidence of the gender estimate
            emotion: Dominant emotion at capture time
            timestamp: Client event time
            location: Capture geolocation
            confidence: Recognition confidence, None for registrations

        Returns:
            Created AnalysisRecordDB instance
        """
        db_record = AnalysisRecordDB(
            name=name,
            gender=gender,
            gender_probability=gender_probability,
            emotion=emotion,
            timestamp=timestamp,
            latitude=location.latitude if location else None,
            longitude=location.longitude if location else None,
            confidence=confidence
        )

        session.add(db_record)
        await session.commit()
        await session.refresh(db_record)

        logger.info(f"Logged analysis record {db_record.id} for '{name}'")
        return db_record

    @staticmethod
    async def get_all(
        session: AsyncSession,
        skip: int = 0,
        limit: Optional[int] = None
    ) -> List[AnalysisRecordDB]:
        """Get analysis records in append order."""
        query = select(AnalysisRecordDB).order_by(AnalysisRecordDB.id.asc()).offset(skip)
        if limit is not None:
            query = query.limit(limit)

        result = await session.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def count(session: AsyncSession) -> int:
        """Get total count of analysis records."""
        result = await session.execute(select(func.count(AnalysisRecordDB.id)))
        return result.scalar() or 0

    @staticmethod
    async def get_last(session: AsyncSession) -> Optional[AnalysisRecordDB]:
        """Most recently appended record."""
        result = await session.execute(
            select(AnalysisRecordDB).order_by(AnalysisRecordDB.id.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def group_by_name(session: AsyncSession) -> Dict[str, List[AttendanceEntry]]:
        """
        Attendance entries grouped by identity name.

        Records without a name are grouped under an empty string.
        """
        records = await AnalysisRecordRepository.get_all(session)

        grouped: Dict[str, List[AttendanceEntry]] = {}
        for record in records:
            grouped.setdefault(record.name or "", []).append(AttendanceEntry(
                timestamp=record.timestamp,
                emotion=record.emotion,
                location=AnalysisRecordRepository._location(record)
            ))
        return grouped

    @staticmethod
    def _location(db_record: AnalysisRecordDB) -> Optional[Location]:
        if db_record.latitude is None or db_record.longitude is None:
            return None
        return Location(latitude=db_record.latitude, longitude=db_record.longitude)

    @staticmethod
    def db_to_schema(db_record: AnalysisRecordDB) -> AnalysisRecord:
        """Convert database model to Pydantic schema."""
        return AnalysisRecord(
            id=db_record.id,
            name=db_record.name,
            gender=db_record.gender,
            gender_probability=db_record.gender_probability,
            emotion=db_record.emotion,
            timestamp=db_record.timestamp,
            location=AnalysisRecordRepository._location(db_record),
            confidence=db_record.confidence,
            created_at=db_record.created_at
        )
