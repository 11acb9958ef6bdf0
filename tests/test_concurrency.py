"""Two approvers racing on the same step: exactly one decision lands."""

import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from approvalflow.core.database import Base, init_db
from approvalflow.core.exceptions import ConcurrentModificationError
from approvalflow.core.permissions import UserRole
from approvalflow.models import Approval, Company, Workflow
from approvalflow.services.audit_service import AuditService
from approvalflow.services.request_store import RequestStore
from approvalflow.services.workflow_config_service import WorkflowConfigService
from approvalflow.services.workflow_service import WorkflowService

from tests.conftest import SIGNATURE, make_user

REASON = "Supplier quote is out of date"


@pytest.fixture
def file_engine(tmp_path):
    """Connections from different threads need a shared file database"""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def Session(file_engine):
    return sessionmaker(bind=file_engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def race(Session):
    """A staff request waiting on its Manager step, with two managers able to act"""
    session = Session()
    company = Company(name="Lycée Victor Hugo")
    session.add(company)
    session.commit()

    staff = make_user(session, company, UserRole.STAFF)
    first = make_user(session, company, UserRole.MANAGER)
    second = make_user(session, company, UserRole.MANAGER, email="second.manager@hugo.approvalflow.fr")

    request = RequestStore(session).create_request(staff)
    session.commit()
    workflow = WorkflowService(session).create_workflow(request.id, company.id, UserRole.STAFF)
    session.close()

    return {"workflow_id": workflow.id, "request_id": request.id, "approvers": [first.id, second.id]}


def gate_after_read(monkeypatch, parties=2):
    """Hold every transition after it has read the workflow until all parties got there"""
    barrier = threading.Barrier(parties, timeout=10)
    original = WorkflowConfigService.get_config

    def gated(self, company_id):
        barrier.wait()
        return original(self, company_id)

    monkeypatch.setattr(WorkflowConfigService, "get_config", gated)


def run_concurrently(Session, actions):
    outcomes = []
    lock = threading.Lock()

    def worker(action):
        session = Session()
        try:
            result = action(WorkflowService(session))
        except Exception as e:
            result = e
        finally:
            session.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker, args=(action,)) for action in actions]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return outcomes


class TestConcurrentTransitions:

    def test_double_approval_records_one_decision(self, Session, race, monkeypatch):
        gate_after_read(monkeypatch)
        workflow_id = race["workflow_id"]

        outcomes = run_concurrently(Session, [
            lambda svc, approver=approver: svc.approve_step(workflow_id, approver, SIGNATURE)
            for approver in race["approvers"]
        ])

        assert len(outcomes) == 2
        errors = [o for o in outcomes if isinstance(o, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], ConcurrentModificationError)
        assert errors[0].retryable is True

        session = Session()
        try:
            assert session.query(Approval).filter(Approval.step_order == 1).count() == 1
            assert session.get(Workflow, workflow_id).current_step_order == 2
            assert AuditService(session).verify_integrity(race["request_id"]).is_valid is True
        finally:
            session.close()

    def test_approve_and_reject_race(self, Session, race, monkeypatch):
        gate_after_read(monkeypatch)
        workflow_id = race["workflow_id"]
        first, second = race["approvers"]

        outcomes = run_concurrently(Session, [
            lambda svc: svc.approve_step(workflow_id, first, SIGNATURE),
            lambda svc: svc.reject_step(workflow_id, second, SIGNATURE, REASON),
        ])

        errors = [o for o in outcomes if isinstance(o, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], ConcurrentModificationError)

        session = Session()
        try:
            decisions = session.query(Approval).filter(Approval.workflow_id == workflow_id).all()
            assert len(decisions) == 1
            workflow = session.get(Workflow, workflow_id)
            if decisions[0].status == "REJECTED":
                assert workflow.is_complete is True
            else:
                assert workflow.current_step_order == 2
                assert workflow.is_complete is False
        finally:
            session.close()

    def test_loser_can_retry_against_fresh_state(self, Session, race, monkeypatch):
        gate_after_read(monkeypatch)
        workflow_id = race["workflow_id"]

        run_concurrently(Session, [
            lambda svc, approver=approver: svc.approve_step(workflow_id, approver, SIGNATURE)
            for approver in race["approvers"]
        ])
        monkeypatch.undo()

        session = Session()
        try:
            current = WorkflowService(session).get_current_approver(workflow_id)
            assert current.role == UserRole.CONTROLEUR
            assert current.step_order == 2
        finally:
            session.close()


class TestLedgerUniqueness:

    def test_second_decision_for_a_step_is_refused(self, Session, race):
        session = Session()
        try:
            approval = dict(
                workflow_id=race["workflow_id"],
                request_id=race["request_id"],
                approver_id=race["approvers"][0],
                step_order=1,
                step_role="MANAGER",
                status="APPROVED",
                digital_signature=SIGNATURE,
            )
            session.add(Approval(**approval))
            session.commit()

            session.add(Approval(**approval))
            with pytest.raises(IntegrityError):
                session.commit()
            session.rollback()
        finally:
            session.close()
