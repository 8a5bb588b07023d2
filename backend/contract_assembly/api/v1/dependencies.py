from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from contract_assembly.core.security import get_tenant_id
from contract_assembly.db.session import SessionLocal
from contract_assembly.services.lifecycle import ContractLifecycle


def get_db() -> Generator[Session, None, None]:
    """Yield a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_lifecycle(db: Session = Depends(get_db)) -> ContractLifecycle:
    return ContractLifecycle(db)


__all__ = ["get_db", "get_lifecycle", "get_tenant_id"]
