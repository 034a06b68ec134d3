"""
Plan persistence.

Generated plans are stored whole as JSON alongside a few indexed columns
(athlete, distance, length, active flag). The engine itself never touches
storage; callers hand a plan to a PlanStore, which exposes async save/load.
SqlAlchemyPlanStore runs the blocking session work in a worker thread.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from runeq.config import get_settings
from runeq.errors import PlanLoadError, PlanSaveError
from runeq.plan_schemas import TrainingPlan

logger = logging.getLogger(__name__)

Base = declarative_base()


class TrainingPlanRecord(Base):
    """
    Saved training plan.

    Attributes:
        id: Primary key
        athlete_id: Owner (UserProfile.athlete_id)
        race_distance: Goal distance value ("marathon", ...)
        total_weeks: Plan length
        plan_data: Full TrainingPlan as JSON
        created_at: When this plan was saved
        is_active: Whether this is the athlete's current plan
    """

    __tablename__ = "training_plans"

    id = Column(Integer, primary_key=True)
    athlete_id = Column(String, nullable=False, index=True)
    race_distance = Column(String, nullable=False)
    total_weeks = Column(Integer, nullable=False)
    plan_data = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    def __repr__(self):
        return (
            f"<TrainingPlanRecord(id={self.id}, athlete='{self.athlete_id}', "
            f"distance='{self.race_distance}', weeks={self.total_weeks}, active={self.is_active})>"
        )


# Database connection and session management

def get_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create SQLAlchemy engine.

    Args:
        database_url: Database connection string (default: RUNEQ_DATABASE_URL)

    Returns:
        SQLAlchemy Engine instance
    """
    url = database_url or get_settings().DATABASE_URL
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, connect_args=connect_args)


def get_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def init_database(database_url: Optional[str] = None) -> Session:
    """
    Initialize database and create all tables.

    Args:
        database_url: Database connection string

    Returns:
        SQLAlchemy Session instance
    """
    engine = get_engine(database_url)
    Base.metadata.create_all(engine)
    SessionFactory = get_session_factory(engine)
    return SessionFactory()


class PlanStore(Protocol):
    """Storage collaborator for generated plans."""

    async def save_plan(self, plan: TrainingPlan) -> int:
        ...

    async def load_plan(self, athlete_id: str) -> Optional[TrainingPlan]:
        ...


class SqlAlchemyPlanStore:
    """
    PlanStore backed by SQLAlchemy.

    Saving a plan makes it the athlete's only active plan. Failures are
    raised as PlanSaveError or PlanLoadError and never retried here.
    """

    def __init__(self, database_url: Optional[str] = None):
        self.engine = get_engine(database_url)
        Base.metadata.create_all(self.engine)
        self.session_factory = get_session_factory(self.engine)

    async def save_plan(self, plan: TrainingPlan) -> int:
        """
        Persist a plan as the athlete's active plan.

        Returns:
            The new record's id

        Raises:
            PlanSaveError: If the database write fails
        """
        return await asyncio.to_thread(self._save, plan)

    async def load_plan(self, athlete_id: str) -> Optional[TrainingPlan]:
        """
        Most recent active plan for an athlete.

        Returns:
            The plan, or None if the athlete has no active plan

        Raises:
            PlanLoadError: If the database read fails
        """
        return await asyncio.to_thread(self._load, athlete_id)

    def _save(self, plan: TrainingPlan) -> int:
        session = self.session_factory()
        try:
            session.query(TrainingPlanRecord).filter(
                TrainingPlanRecord.athlete_id == plan.athlete_id,
                TrainingPlanRecord.is_active.is_(True),
            ).update({TrainingPlanRecord.is_active: False})
            record = TrainingPlanRecord(
                athlete_id=plan.athlete_id,
                race_distance=plan.plan_overview.race_distance.value,
                total_weeks=plan.plan_overview.total_weeks,
                plan_data=plan.model_dump(mode="json"),
                is_active=True,
            )
            session.add(record)
            session.commit()
            logger.info("Saved plan %d for %s", record.id, plan.athlete_id)
            return record.id
        except SQLAlchemyError as e:
            session.rollback()
            raise PlanSaveError(f"Could not save plan for {plan.athlete_id}: {e}") from e
        finally:
            session.close()

    def _load(self, athlete_id: str) -> Optional[TrainingPlan]:
        session = self.session_factory()
        try:
            record = session.execute(
                select(TrainingPlanRecord)
                .where(
                    TrainingPlanRecord.athlete_id == athlete_id,
                    TrainingPlanRecord.is_active.is_(True),
                )
                .order_by(TrainingPlanRecord.id.desc())
            ).scalars().first()
            if record is None:
                return None
            return TrainingPlan.model_validate(record.plan_data)
        except SQLAlchemyError as e:
            raise PlanLoadError(f"Could not load plan for {athlete_id}: {e}") from e
        finally:
            session.close()
