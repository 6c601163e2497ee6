import asyncio
import logging

from sqlalchemy.exc import OperationalError

from app.core.authz import RequestContext
from app.schemas.activity import DeleteDetails, UpdateDetails, details_adapter
from app.services.activity import ActivityLogger

ACTOR = RequestContext(user_id=4, name="Ann", email="ann@example.com", role="USER")


class RecordingSession:
    def __init__(self, fail=False):
        self.fail = fail
        self.added = []
        self.rolled_back = False

    def add(self, obj):
        self.added.append(obj)

    async def commit(self):
        if self.fail:
            raise OperationalError("INSERT INTO activity_logs", {}, Exception("database is locked"))

    async def rollback(self):
        self.rolled_back = True


def test_record_writes_denormalized_actor_and_tagged_details():
    db = RecordingSession()
    details = UpdateDetails(before={"amount": 1.0}, after={"amount": 2.0})

    entry = asyncio.run(ActivityLogger.record(db, ACTOR, "UPDATE", "Transaction", 9, details))

    assert entry is db.added[0]
    assert (entry.user_id, entry.user_name, entry.action, entry.entity_type, entry.entity_id) == (
        4, "Ann", "UPDATE", "Transaction", 9,
    )
    assert entry.details == {"kind": "update", "before": {"amount": 1.0}, "after": {"amount": 2.0}}


def test_record_failure_is_swallowed_and_reported(caplog):
    db = RecordingSession(fail=True)
    details = DeleteDetails(deletedTransaction={"amount": 5.0})

    with caplog.at_level(logging.ERROR, logger="app.services.activity"):
        entry = asyncio.run(ActivityLogger.record(db, ACTOR, "DELETE", "Transaction", 9, details))

    assert entry is None
    assert db.rolled_back
    assert "Activity log write failed" in caplog.text


def test_stored_details_resolve_back_to_their_variant():
    stored = details_adapter.dump_python(
        DeleteDetails(deletedTransaction={"amount": 5.0}), mode="json", exclude_none=True,
    )
    assert stored == {"kind": "delete", "deletedTransaction": {"amount": 5.0}}
    assert isinstance(details_adapter.validate_python(stored), DeleteDetails)
