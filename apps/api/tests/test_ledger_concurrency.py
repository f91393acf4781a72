"""Tests for concurrent appends to the same case chain."""

import gc
import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from casevault_api.db.base import Base
from casevault_api.ledger import service as service_module
from casevault_api.ledger.actions import AuditAction
from casevault_api.ledger.entry import GENESIS_HASH
from casevault_api.ledger.exceptions import LedgerAppendConflict, LedgerPersistenceError
from casevault_api.ledger.service import LedgerService
from casevault_api.models import Case, User
from casevault_api.models.user import ROLE_CLIENT, ROLE_INVESTIGATOR


@pytest.fixture
def file_sessionmaker(tmp_path):
    """Sessions on a file-backed SQLite database, one connection per session."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


def _seed_cases(factory, count: int) -> tuple[int, list[int]]:
    session = factory()
    try:
        lead = User(email="lead@example.com", first_name="Dana", last_name="Reyes",
                    role=ROLE_INVESTIGATOR, password_hash="x")
        client = User(email="client@example.com", first_name="Sam", last_name="Okafor",
                      role=ROLE_CLIENT, password_hash="x")
        session.add_all([lead, client])
        session.flush()
        cases = [
            Case(case_number=f"CASE-{i:05d}", case_name=f"Case {i}",
                 lead_investigator_id=lead.id, client_id=client.id)
            for i in range(1, count + 1)
        ]
        session.add_all(cases)
        session.commit()
        return lead.id, [c.id for c in cases]
    finally:
        session.close()


def _run_threads(factory, targets: list[tuple[int, int]], appends_per_thread: int) -> list:
    errors = []
    barrier = threading.Barrier(len(targets))

    def worker(case_id: int, actor_id: int, n: int):
        session = factory()
        try:
            service = LedgerService(session)
            barrier.wait()
            for i in range(appends_per_thread):
                service.append(case_id, actor_id, AuditAction.OVERVIEW_MODIFIED, f"thread {n} edit {i}")
        except Exception as e:  # collected and asserted on by the test
            errors.append(e)
        finally:
            session.close()

    threads = [
        threading.Thread(target=worker, args=(case_id, actor_id, n))
        for n, (case_id, actor_id) in enumerate(targets)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return errors


def test_concurrent_appends_same_case_stay_linear(file_sessionmaker):
    """Parallel writers on one case produce one unforked chain."""
    actor_id, (case_id,) = _seed_cases(file_sessionmaker, 1)
    threads, per_thread = 6, 10

    errors = _run_threads(file_sessionmaker, [(case_id, actor_id)] * threads, per_thread)
    assert errors == []

    session = file_sessionmaker()
    try:
        service = LedgerService(session)
        entries = service.get_entries(case_id)
        assert len(entries) == threads * per_thread
        assert [e.sequence for e in entries] == list(range(threads * per_thread))
        assert len({e.previous_hash for e in entries}) == len(entries)
        assert service.verify_chain(case_id).valid
    finally:
        session.close()


def test_concurrent_appends_different_cases(file_sessionmaker):
    """Writers on different cases build independent chains."""
    actor_id, case_ids = _seed_cases(file_sessionmaker, 3)

    errors = _run_threads(file_sessionmaker, [(cid, actor_id) for cid in case_ids], 8)
    assert errors == []

    session = file_sessionmaker()
    try:
        service = LedgerService(session)
        for case_id in case_ids:
            entries = service.get_entries(case_id)
            assert len(entries) == 8
            assert entries[0].previous_hash == GENESIS_HASH
            assert service.verify_chain(case_id).valid
    finally:
        session.close()


def _stale_head(service: LedgerService, stale_reads: set):
    """Make selected head reads return an empty chain, as if another writer raced us."""
    real = service.store.most_recent_entry
    calls = {"n": 0}

    def most_recent_entry(case_id):
        calls["n"] += 1
        if calls["n"] in stale_reads:
            return None
        return real(case_id)

    service.store.most_recent_entry = most_recent_entry


def test_conflict_is_retried_once(db, case, investigator):
    """A stale head triggers a constraint violation, then a clean retry."""
    service = LedgerService(db)
    head_before = service.store.most_recent_entry(case.id)

    # read 1 is stale; read 2 (post-failure check) and read 3 (retry) are real
    _stale_head(service, stale_reads={1})
    entry = service.append(case.id, investigator.id, AuditAction.OVERVIEW_MODIFIED, "raced edit")

    assert entry.previous_hash == head_before.entry_hash
    assert entry.sequence == head_before.sequence + 1
    assert LedgerService(db).verify_chain(case.id).valid


def test_second_conflict_propagates(db, case, investigator):
    service = LedgerService(db)
    count_before = service.store.count(case.id)

    # both attempts read a stale head; the post-failure checks read the real one
    _stale_head(service, stale_reads={1, 3})
    with pytest.raises(LedgerAppendConflict):
        service.append(case.id, investigator.id, AuditAction.OVERVIEW_MODIFIED, "raced twice")

    assert LedgerService(db).store.count(case.id) == count_before
    assert LedgerService(db).verify_chain(case.id).valid


def test_record_swallows_ledger_failures(db, case, investigator, caplog):
    """Business handlers get None instead of an exception when auditing fails."""
    service = LedgerService(db)
    _stale_head(service, stale_reads={1, 3})

    with caplog.at_level("ERROR"):
        assert service.record(case.id, investigator.id, AuditAction.OVERVIEW_MODIFIED, "x") is None
    assert "Audit ledger append failed" in caplog.text


def test_lock_timeout_is_persistence_error(db, case, investigator, monkeypatch):
    monkeypatch.setattr(service_module.settings, "ledger_lock_timeout_seconds", 0.01)
    lock = service_module._lock_for_case(case.id)
    lock.acquire()
    try:
        with pytest.raises(LedgerPersistenceError, match="lock"):
            LedgerService(db).append(case.id, investigator.id, AuditAction.OVERVIEW_MODIFIED, "blocked")
    finally:
        lock.release()


def test_case_locks_are_released_when_unused(db, case, investigator):
    """The lock registry does not keep an entry for every case ever appended to."""
    lock = service_module._lock_for_case(case.id)
    assert service_module._lock_for_case(case.id) is lock
    assert case.id in service_module._case_locks

    del lock
    gc.collect()
    assert case.id not in service_module._case_locks

    LedgerService(db).append(case.id, investigator.id, AuditAction.OVERVIEW_MODIFIED, "after")
    gc.collect()
    assert case.id not in service_module._case_locks
    assert LedgerService(db).verify_chain(case.id).valid
