"""Shared fixtures: an in-memory database and a small catalog builder."""

from __future__ import annotations

import uuid
from typing import Any, Iterable

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from contract_assembly.db.base import Base
from contract_assembly.models.catalog import Clause, ClauseVersion, Template, TemplateVersion
from contract_assembly.services import catalog
from contract_assembly.services.audit import AuditDispatcher
from contract_assembly.services.lifecycle import ContractLifecycle


def slot(slot_id: str, clause: Clause, *alternatives: Clause, type: str = "required") -> dict[str, Any]:
    return {
        "id": slot_id,
        "clause_id": str(clause.id),
        "type": type,
        "alternative_clause_ids": [str(c.id) for c in alternatives],
    }


def section(title: str, *, slots: Iterable[dict] = (), clauses: Iterable[Clause] = ()) -> dict[str, Any]:
    return {"title": title, "slots": list(slots), "clauses": [str(c.id) for c in clauses]}


def question(question_id: str, type: str = "text", *, required: bool = False, **extra: Any) -> dict[str, Any]:
    return {"id": question_id, "type": type, "label": question_id, "required": required, **extra}


class CatalogBuilder:
    """Creates and publishes catalog content, committing after each step."""

    def __init__(self, db, tenant_id: uuid.UUID) -> None:
        self.db = db
        self.tenant_id = tenant_id

    def clause(
        self, title: str, *, rules: Iterable[dict] = (), publish: bool = True, jurisdiction: str = "DE"
    ) -> tuple[Clause, ClauseVersion]:
        clause = catalog.create_clause(
            self.db, tenant_id=self.tenant_id, title=title, jurisdiction=jurisdiction
        )
        return clause, self.clause_version(clause, rules=rules, publish=publish)

    def clause_version(
        self, clause: Clause, *, rules: Iterable[dict] = (), publish: bool = True, content: str | None = None
    ) -> ClauseVersion:
        version = catalog.add_clause_version(
            self.db, clause, content=content or f"{clause.title} text", rules=rules
        )
        if publish:
            catalog.publish_version(self.db, version)
        self.db.commit()
        return version

    def template(
        self,
        *,
        structure: Iterable[dict],
        questions: Iterable[dict] = (),
        publish: bool = True,
        jurisdiction: str = "DE",
        title: str = "Purchase agreement",
    ) -> tuple[Template, TemplateVersion]:
        template = catalog.create_template(
            self.db, tenant_id=self.tenant_id, title=title, jurisdiction=jurisdiction
        )
        version = self.template_version(template, structure=structure, questions=questions, publish=publish)
        return template, version

    def template_version(
        self,
        template: Template,
        *,
        structure: Iterable[dict],
        questions: Iterable[dict] = (),
        publish: bool = True,
    ) -> TemplateVersion:
        version = catalog.add_template_version(
            self.db, template, structure=structure, questions=questions
        )
        if publish:
            catalog.publish_version(self.db, version)
        self.db.commit()
        return version


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def tenant_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def builder(db, tenant_id) -> CatalogBuilder:
    return CatalogBuilder(db, tenant_id)


@pytest.fixture
def audit_sink() -> list[dict[str, Any]]:
    return []


@pytest.fixture
def audit(audit_sink) -> AuditDispatcher:
    return AuditDispatcher(send=audit_sink.append)


@pytest.fixture
def lifecycle(db, audit) -> ContractLifecycle:
    return ContractLifecycle(db, audit=audit)
