import pytest

from database import UnitOfWork
from errors import ConflictError, InternalError, NotFoundError, translate_integrity_error
from models.location import Location
from models.log import AuditLog
from models.stock import StockLevel
from utils.audit import write_log


def test_commit_on_success(db):
    with UnitOfWork(db):
        db.add(Location(name="Dock"))

    db.rollback()
    assert db.query(Location).count() == 1


def test_rollback_on_business_error(db):
    with pytest.raises(ValueError):
        with UnitOfWork(db):
            db.add(Location(name="Dock"))
            db.flush()
            raise ValueError("nope")

    assert db.query(Location).count() == 0


def test_unique_violation_becomes_conflict(db, locations):
    with pytest.raises(ConflictError):
        with UnitOfWork(db):
            db.add(Location(name="Main Warehouse"))
            db.flush()


def test_foreign_key_violation_becomes_not_found(db, locations):
    main, _ = locations
    with pytest.raises(NotFoundError):
        with UnitOfWork(db):
            db.add(StockLevel(product_id=9999, location_id=main.id, quantity=1))


def test_unrecognised_integrity_error_is_internal():
    class FakeIntegrityError:
        orig = Exception("CHECK constraint failed: weird")

    assert isinstance(translate_integrity_error(FakeIntegrityError()), InternalError)


def test_audit_entry_commits_with_the_work(db, admin):
    with UnitOfWork(db):
        db.add(Location(name="Dock"))
        write_log(db, user_id=admin.id, action="CREATE_LOCATION", entity="Location", entity_id=1,
                  meta={"name": "Dock"})

    entry = db.query(AuditLog).one()
    assert (entry.action, entry.entity_id, entry.status) == ("CREATE_LOCATION", "1", "SUCCESS")
    assert entry.details == {"name": "Dock"}


def test_failed_audit_write_does_not_poison_the_work(db, caplog):
    with UnitOfWork(db):
        db.add(Location(name="Dock"))
        db.flush()
        # Unknown user violates the foreign key; only the savepoint is discarded
        write_log(db, user_id=9999, action="CREATE_LOCATION", entity="Location", entity_id=1)

    assert db.query(Location).filter(Location.name == "Dock").count() == 1
    assert db.query(AuditLog).count() == 0
    assert "Failed to write audit log entry" in caplog.text
