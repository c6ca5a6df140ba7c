"""
Service state

Everything the API mutates lives on one ServiceState, built when the
application starts and torn down when it stops.
"""
import asyncio
import logging

from app.config import DATABASE_URL, EMBEDDING_DIM
from app.database import Database
from app.descriptor_store import DescriptorStore
from app.sample_log import SessionRegistry

logger = logging.getLogger(__name__)


class ServiceState:
    """Owns the descriptor store, emotion sessions and attendance database."""

    def __init__(self, database_url: str = DATABASE_URL, dimension: int = EMBEDDING_DIM):
        self.store = DescriptorStore(dimension=dimension)
        self.sessions = SessionRegistry()
        self.database = Database(database_url)
        # Serializes the check, log and enroll steps of a registration
        self.registration_lock = asyncio.Lock()

    async def start(self) -> None:
        await self.database.init()
        logger.info(f"Service started (descriptor dimension {self.store.dimension})")

    async def stop(self) -> None:
        await self.database.close()
        logger.info(
            f"Service stopped with {self.store.count} identities "
            f"and {len(self.sessions)} sessions"
        )
