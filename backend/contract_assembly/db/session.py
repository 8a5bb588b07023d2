"""Database session configuration."""
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from contract_assembly.core.config import get_settings
from contract_assembly.core.exceptions import ConcurrentModification

settings = get_settings()

engine_options: dict = {"pool_pre_ping": True}
if settings.DATABASE_URL.startswith("sqlite"):
    engine_options["connect_args"] = {"check_same_thread": False}
else:
    engine_options.update(pool_size=10, max_overflow=20)

# Create engine
engine = create_engine(settings.DATABASE_URL, **engine_options)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Get database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def write_transaction(db: Session) -> Iterator[Session]:
    """Commit on success, roll back on any failure.

    A lost optimistic revision check surfaces as ``ConcurrentModification``.
    """
    try:
        yield db
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        raise ConcurrentModification(
            "Instance was modified concurrently; reload and retry",
            details={"reason": str(exc)},
        ) from exc
    except Exception:
        db.rollback()
        raise
