import logging

from roadmap_visibility.models import EntityType
from roadmap_visibility.services import audit_service


def test_record_visibility_change_persists_and_logs(fake_db, clock, caplog):
    logger = logging.getLogger("roadmap_visibility.test")

    with caplog.at_level(logging.INFO, logger="roadmap_visibility.test"):
        stored = audit_service.record_visibility_change(
            "admin-1", EntityType.OBJECTIVE, "m1-0", False, True, "r1", "m1", 123.0,
            db=fake_db, logger=logger, time_module=clock,
        )

    assert stored is True
    entry = list(fake_db.docs("visibility_audit_logs").values())[0]
    assert entry == {
        "admin_id": "admin-1",
        "entity_type": "objective",
        "entity_id": "m1-0",
        "previous_is_public": False,
        "new_is_public": True,
        "parent_roadmap_slug": "r1",
        "parent_milestone_id": "m1",
        "created_at": 123.0,
    }
    assert '"event": "visibility_changed"' in caplog.text


def test_record_visibility_change_returns_false_on_failure(fake_db, clock):
    fake_db.failures.add(("visibility_audit_logs", "add"))

    stored = audit_service.record_visibility_change(
        "admin-1", "roadmap", "r1", None, True, db=fake_db, logger=None, time_module=clock,
    )

    assert stored is False


def test_list_recent_changes_sorts_newest_first_and_bounds_limit(fake_db, clock):
    for flag in (True, False, True):
        audit_service.record_visibility_change("admin-1", "roadmap", "r1", None, flag, db=fake_db, logger=None, time_module=clock)

    entries = audit_service.list_recent_changes(db=fake_db, limit="2")

    assert len(entries) == 2
    assert entries[0]["created_at"] > entries[1]["created_at"]
    assert audit_service.list_recent_changes(db=fake_db, limit="junk")
