"""
Face Identity & Emotion Analytics API

Facial identity matching and emotion analytics over descriptors and
expression vectors produced by an external inference layer.

Endpoints:
- POST /faces - Register a face descriptor under a unique name
- GET /faces - List enrolled identities
- POST /faces/recognize - Match a descriptor against enrolled identities
- GET /attendance - List attendance/audit records
- GET /stats - Store and attendance statistics
- POST /sessions - Start an emotion session (or store a whole video's samples)
- POST /sessions/{session_id}/samples - Append an emotion sample
- GET /sessions/{session_id}/summary - Session statistics
- GET /sessions/{session_id}/timeline - Ten-segment emotion timeline
"""
import time
import logging
from dataclasses import asdict
from datetime import datetime
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, HTTPException, Query, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession

from app import analytics
from app.config import (
    API_TITLE,
    API_DESCRIPTION,
    API_VERSION,
    DATABASE_URL,
    EMBEDDING_DIM,
    KEY_MOMENT_THRESHOLD,
    LOG_FORMAT,
    LOG_LEVEL,
    RECOGNITION_THRESHOLD,
    TOP_K_MATCHES,
    TREND_INTERVAL_SECONDS
)
from app.descriptor_store import DescriptorStore, as_descriptor
from app.errors import SessionClosedError, ValidationError
from app.matcher import match_with_candidates
from app.repository import AnalysisRecordRepository
from app.sample_log import EmotionSampleLog, SessionRegistry, make_sample
from app.schemas import (
    AttendanceList,
    CreateSessionRequest,
    DeleteResponse,
    EmotionSampleIn,
    ErrorResponse,
    IdentityList,
    KeyMomentSchema,
    KeyMomentsResponse,
    MatchCandidate,
    RecognizeFaceRequest,
    RecognizeFaceResponse,
    RegisterFaceRequest,
    RegisterFaceResponse,
    ReportResponse,
    SampleAck,
    SessionInfo,
    SessionList,
    SessionOverview,
    SessionResponse,
    SessionSummaryResponse,
    StatsResponse,
    SummarySchema,
    TimelineResponse,
    TimelineSegmentSchema,
    TransitionSchema,
    TransitionsResponse,
    TrendBucketSchema,
    TrendsResponse
)
from app.state import ServiceState

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format=LOG_FORMAT
)
logger = logging.getLogger(__name__)

router = APIRouter()


def get_state(request: Request) -> ServiceState:
    """Dependency to get the service state owned by the application."""
    return request.app.state.service


def get_store(state: ServiceState = Depends(get_state)) -> DescriptorStore:
    return state.store


def get_sessions(state: ServiceState = Depends(get_state)) -> SessionRegistry:
    return state.sessions


async def get_db(state: ServiceState = Depends(get_state)) -> AsyncSession:
    """Dependency to get database session."""
    async with state.database.session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def _name_taken(name: str) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail=f"Name '{name}' is already registered"
    )


def _session_not_found(session_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=f"No emotion session with ID '{session_id}'"
    )


def _get_session(sessions: SessionRegistry, session_id: str) -> EmotionSampleLog:
    log = sessions.get(session_id)
    if log is None:
        raise _session_not_found(session_id)
    return log


def _session_info(log: EmotionSampleLog) -> SessionInfo:
    return SessionInfo(
        session_id=log.session_id,
        title=log.title,
        created_at=log.created_at,
        duration=log.duration,
        closed=log.closed,
        sample_count=len(log)
    )


def _summary_schema(summary: analytics.Summary) -> SummarySchema:
    return SummarySchema(**asdict(summary))


@router.get("/", include_in_schema=False)
async def root(state: ServiceState = Depends(get_state)):
    """Root endpoint with API info."""
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "descriptorDimension": state.store.dimension,
        "recognitionThreshold": RECOGNITION_THRESHOLD,
        "totalFaces": state.store.count,
        "activeSessions": len(state.sessions),
        "endpoints": {
            "register": "POST /faces",
            "recognize": "POST /faces/recognize",
            "attendance": "GET /attendance",
            "sessions": "POST /sessions",
            "summary": "GET /sessions/{session_id}/summary"
        }
    }


@router.get("/health")
async def health_check(state: ServiceState = Depends(get_state)):
    """Health check endpoint."""
    try:
        db_status = "healthy" if await state.database.ping() else "unhealthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "unhealthy"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "databaseStatus": db_status,
        "totalFaces": state.store.count,
        "activeSessions": len(state.sessions)
    }


# ============================================================================
# API 1: REGISTER FACE
# ============================================================================
@router.post(
    "/faces",
    response_model=RegisterFaceResponse,
    responses={
        409: {"model": ErrorResponse, "description": "Name already registered"},
        422: {"model": ErrorResponse, "description": "Invalid name or descriptor"}
    },
    summary="Register a face descriptor",
    description="""
    Enroll a descriptor under a unique, case-sensitive name.

    If gender metadata is supplied the registration is also written to the
    attendance log.
    """
)
async def register_face(
    body: RegisterFaceRequest,
    state: ServiceState = Depends(get_state),
    store: DescriptorStore = Depends(get_store),
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new identity.

    Enrollment is the commit point. The descriptor is validated and the
    attendance row written first, so a failed database write leaves the
    store unchanged and the registration can be retried.
    """
    as_descriptor(body.descriptor, store.dimension)

    async with state.registration_lock:
        if body.name in store:
            raise _name_taken(body.name)

        if body.gender and body.gender_probability is not None:
            await AnalysisRecordRepository.create(
                session=db,
                name=body.name,
                gender=body.gender,
                gender_probability=body.gender_probability,
                timestamp=datetime.utcnow().isoformat()
            )

        result = store.register(body.name, body.descriptor)

    if not result.created:
        raise _name_taken(body.name)

    return RegisterFaceResponse(
        success=True,
        message=f"Face registered for {body.name}",
        count=result.count
    )


@router.get(
    "/faces",
    response_model=IdentityList,
    summary="List enrolled identities"
)
async def list_faces(store: DescriptorStore = Depends(get_store)):
    names = store.names()
    return IdentityList(total_count=len(names), names=names)


# ============================================================================
# API 2: RECOGNIZE FACE
# ============================================================================
@router.post(
    "/faces/recognize",
    response_model=RecognizeFaceResponse,
    response_model_exclude_none=True,
    responses={
        422: {"model": ErrorResponse, "description": "Invalid descriptor"}
    },
    summary="Recognize a face descriptor",
    description="""
    Find the enrolled identity nearest to the probe.

    **Decision:**
    - Euclidean distance to every identity, in enrollment order
    - Accepted only when strictly below `threshold`; the earliest identity
      wins ties
    - `confidence` = 1 - distance / threshold

    A successful recognition is written to the attendance log together with
    the capture metadata.
    """
)
async def recognize_face(
    body: RecognizeFaceRequest,
    threshold: float = Query(
        RECOGNITION_THRESHOLD,
        gt=0.0,
        description="Euclidean distance threshold (lower = stricter)"
    ),
    top_k: int = Query(TOP_K_MATCHES, ge=0, le=20, description="Number of nearest identities to return"),
    store: DescriptorStore = Depends(get_store),
    db: AsyncSession = Depends(get_db)
):
    """Match a probe descriptor against all enrolled identities."""
    start_time = time.time()

    result, candidates = match_with_candidates(
        store.snapshot(),
        body.descriptor,
        threshold=threshold,
        top_k=top_k
    )
    top_matches = [MatchCandidate(name=c.name, distance=c.distance) for c in candidates]

    processing_time = (time.time() - start_time) * 1000

    if not result.matched:
        logger.info(f"No match found (nearest distance: {result.distance}) in {processing_time:.1f}ms")
        return RecognizeFaceResponse(
            recognized=False,
            distance=result.distance,
            top_matches=top_matches,
            message="No match found"
        )

    await AnalysisRecordRepository.create(
        session=db,
        name=result.name,
        gender=body.gender,
        gender_probability=body.gender_probability,
        emotion=body.emotion,
        timestamp=body.timestamp,
        location=body.location,
        confidence=result.confidence
    )

    logger.info(
        f"Matched face to '{result.name}' "
        f"(confidence: {result.confidence:.2%}) in {processing_time:.1f}ms"
    )
    return RecognizeFaceResponse(
        recognized=True,
        name=result.name,
        confidence=result.confidence,
        distance=result.distance,
        top_matches=top_matches
    )


# ============================================================================
# API 3: ATTENDANCE
# ============================================================================
@router.get(
    "/attendance",
    response_model=AttendanceList,
    summary="List attendance records",
    description="Registration and recognition events in the order they were logged."
)
async def list_attendance(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: Optional[int] = Query(None, ge=1, le=10000, description="Maximum number of records to return"),
    db: AsyncSession = Depends(get_db)
):
    total_count = await AnalysisRecordRepository.count(db)
    db_records = await AnalysisRecordRepository.get_all(db, skip=skip, limit=limit)

    return AttendanceList(
        total_count=total_count,
        records=[AnalysisRecordRepository.db_to_schema(r) for r in db_records]
    )


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Store and attendance statistics"
)
async def get_stats(
    store: DescriptorStore = Depends(get_store),
    db: AsyncSession = Depends(get_db)
):
    last_record = await AnalysisRecordRepository.get_last(db)
    return StatsResponse(
        face_count=store.count,
        analysis_count=await AnalysisRecordRepository.count(db),
        last_analysis=AnalysisRecordRepository.db_to_schema(last_record) if last_record else None,
        attendance_stats=await AnalysisRecordRepository.group_by_name(db)
    )


# ============================================================================
# API 4: EMOTION SESSIONS
# ============================================================================
@router.post(
    "/sessions",
    response_model=SessionResponse,
    responses={
        409: {"model": ErrorResponse, "description": "Session ID already in use"},
        422: {"model": ErrorResponse, "description": "Invalid samples"}
    },
    summary="Start an emotion session",
    description="""
    Start a live capture session, or store a finished video analysis in one
    call by passing its samples, its duration and `closed: true`.
    """
)
async def create_session(
    body: CreateSessionRequest,
    sessions: SessionRegistry = Depends(get_sessions)
):
    samples = [make_sample(s.timestamp, s.expressions) for s in body.samples]

    creation = sessions.create(
        session_id=body.session_id,
        title=body.title,
        duration=body.duration,
        samples=samples,
        closed=body.closed
    )
    if not creation.created:
        raise HTTPException(
            status_code=409,
            detail=f"Session '{body.session_id}' already exists"
        )

    return SessionResponse(
        success=True,
        message="Session created",
        session=_session_info(creation.session)
    )


@router.get(
    "/sessions",
    response_model=SessionList,
    summary="List emotion sessions with their summaries"
)
async def list_sessions(sessions: SessionRegistry = Depends(get_sessions)):
    overviews = [
        SessionOverview(
            session=_session_info(log),
            summary=_summary_schema(analytics.summary(log.snapshot()))
        )
        for log in sessions.list()
    ]
    return SessionList(total_count=len(overviews), sessions=overviews)


@router.post(
    "/sessions/{session_id}/samples",
    response_model=SampleAck,
    responses={
        404: {"model": ErrorResponse, "description": "Session not found"},
        409: {"model": ErrorResponse, "description": "Session is closed"},
        422: {"model": ErrorResponse, "description": "Invalid sample"}
    },
    summary="Append an emotion sample"
)
async def append_sample(
    session_id: str,
    body: EmotionSampleIn,
    smooth: bool = Query(False, description="Apply live-capture sigmoid smoothing before use"),
    sessions: SessionRegistry = Depends(get_sessions)
):
    log = _get_session(sessions, session_id)
    sample = make_sample(body.timestamp, body.expressions, smooth=smooth)
    count = log.append(sample)

    return SampleAck(
        session_id=session_id,
        count=count,
        dominant_emotion=sample.dominant_emotion
    )


@router.post(
    "/sessions/{session_id}/close",
    response_model=SessionResponse,
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
    summary="Freeze an emotion session"
)
async def close_session(
    session_id: str,
    sessions: SessionRegistry = Depends(get_sessions)
):
    log = sessions.close(session_id)
    if log is None:
        raise _session_not_found(session_id)

    return SessionResponse(
        success=True,
        message="Session closed",
        session=_session_info(log)
    )


@router.delete(
    "/sessions/{session_id}",
    response_model=DeleteResponse,
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
    summary="Discard an emotion session"
)
async def delete_session(
    session_id: str,
    sessions: SessionRegistry = Depends(get_sessions)
):
    if not sessions.delete(session_id):
        raise _session_not_found(session_id)

    return DeleteResponse(
        success=True,
        message=f"Session '{session_id}' discarded",
        deleted_id=session_id
    )


@router.get(
    "/sessions/{session_id}/summary",
    response_model=SessionSummaryResponse,
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
    summary="Get session summary",
    description="Summary statistics for a session. Requesting it freezes the session."
)
async def get_summary(
    session_id: str,
    sessions: SessionRegistry = Depends(get_sessions)
):
    log = _get_session(sessions, session_id)
    log.freeze()

    return SessionSummaryResponse(
        session_id=session_id,
        summary=_summary_schema(analytics.summary(log.snapshot()))
    )


@router.get(
    "/sessions/{session_id}/timeline",
    response_model=TimelineResponse,
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
    summary="Get the ten-segment emotion timeline"
)
async def get_timeline(
    session_id: str,
    duration: Optional[float] = Query(
        None,
        gt=0,
        description="Total duration in seconds; defaults to the session's duration"
    ),
    sessions: SessionRegistry = Depends(get_sessions)
):
    log = _get_session(sessions, session_id)
    duration = duration if duration is not None else log.duration
    segments = analytics.timeline(log.snapshot(), duration)

    return TimelineResponse(
        session_id=session_id,
        duration=duration,
        segments=[TimelineSegmentSchema(**asdict(s)) for s in segments]
    )


@router.get(
    "/sessions/{session_id}/trends",
    response_model=TrendsResponse,
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
    summary="Get emotion trends per time interval"
)
async def get_trends(
    session_id: str,
    interval: float = Query(TREND_INTERVAL_SECONDS, gt=0, description="Bucket width in seconds"),
    sessions: SessionRegistry = Depends(get_sessions)
):
    log = _get_session(sessions, session_id)
    trends = analytics.emotion_trends(log.snapshot(), interval)

    return TrendsResponse(
        session_id=session_id,
        interval_seconds=interval,
        trends=[TrendBucketSchema(**asdict(t)) for t in trends]
    )


@router.get(
    "/sessions/{session_id}/key-moments",
    response_model=KeyMomentsResponse,
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
    summary="Get key emotional moments"
)
async def get_key_moments(
    session_id: str,
    threshold: float = Query(KEY_MOMENT_THRESHOLD, ge=0.0, le=1.0),
    sessions: SessionRegistry = Depends(get_sessions)
):
    log = _get_session(sessions, session_id)
    moments = analytics.key_moments(log.snapshot(), threshold)

    return KeyMomentsResponse(
        session_id=session_id,
        threshold=threshold,
        key_moments=[KeyMomentSchema(**asdict(m)) for m in moments]
    )


@router.get(
    "/sessions/{session_id}/transitions",
    response_model=TransitionsResponse,
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
    summary="Get dominant emotion transitions"
)
async def get_transitions(
    session_id: str,
    sessions: SessionRegistry = Depends(get_sessions)
):
    log = _get_session(sessions, session_id)
    changes = analytics.transitions(log.snapshot())

    return TransitionsResponse(
        session_id=session_id,
        number_of_transitions=len(changes),
        transitions=[TransitionSchema(**asdict(t)) for t in changes]
    )


@router.get(
    "/sessions/{session_id}/report",
    response_model=ReportResponse,
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
    summary="Get the data for a session report",
    description="Everything a report renderer needs: counts, summary, timeline and insights."
)
async def get_report(
    session_id: str,
    sessions: SessionRegistry = Depends(get_sessions)
):
    log = _get_session(sessions, session_id)
    samples = log.snapshot()

    return ReportResponse(
        session_id=session_id,
        title=log.title or "Untitled Video",
        generated_at=datetime.utcnow(),
        duration=analytics.format_timestamp(samples[-1].timestamp if samples else 0.0),
        dominant_emotion_counts=analytics.dominant_emotion_counts(samples),
        summary=_summary_schema(analytics.summary(samples)),
        timeline=[
            TimelineSegmentSchema(**asdict(s))
            for s in analytics.timeline(samples, log.duration)
        ],
        insights=analytics.insights(samples)
    )


# Exception handlers
async def validation_exception_handler(request, exc: ValidationError):
    """Rejected input: the caller must correct it."""
    return JSONResponse(
        status_code=422,
        content={
            "error": type(exc).__name__,
            "detail": str(exc)
        }
    )


async def request_validation_handler(request, exc: RequestValidationError):
    """Request body, path or query rejected by its schema."""
    problems = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={
            "error": "RequestValidationError",
            "detail": "; ".join(problems)
        }
    )


async def session_closed_handler(request, exc: SessionClosedError):
    return JSONResponse(
        status_code=409,
        content={
            "error": "SessionClosedError",
            "detail": str(exc)
        }
    )


async def http_exception_handler(request, exc):
    """Custom HTTP exception handler."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "HTTPException",
            "detail": exc.detail
        }
    )


async def general_exception_handler(request, exc):
    """General exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "InternalServerError",
            "detail": "An unexpected error occurred"
        }
    )


def create_app(database_url: str = DATABASE_URL, dimension: int = EMBEDDING_DIM) -> FastAPI:
    """Build the application with its own store, sessions and database."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        # Startup
        logger.info("Starting Face Identity & Emotion Analytics API...")
        state = ServiceState(database_url=database_url, dimension=dimension)
        await state.start()
        app.state.service = state
        yield

        # Shutdown
        await state.stop()
        logger.info("Shutting down Face Identity & Emotion Analytics API...")

    application = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        lifespan=lifespan
    )

    # Add CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(router)

    application.add_exception_handler(ValidationError, validation_exception_handler)
    application.add_exception_handler(RequestValidationError, request_validation_handler)
    application.add_exception_handler(SessionClosedError, session_closed_handler)
    application.add_exception_handler(HTTPException, http_exception_handler)
    application.add_exception_handler(Exception, general_exception_handler)

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
