import json
from datetime import date

import pytest

from advisorconnect import cli
from advisorconnect.domain.migration.service import MigrationService, normalize_answers
from advisorconnect.domain.migration.storage import FileLegacyStorage, InMemoryLegacyStorage
from advisorconnect.errors import NotFoundError
from advisorconnect.models import Meeting, SchedulingLink


def legacy_link(slug="intro", email="advisor@example.com", **extra):
    record = {
        "id": f"local-{slug}",
        "name": "Intro Call",
        "slug": slug,
        "duration": 30,
        "maxAdvanceDays": 14,
        "maxUses": None,
        "expirationDate": None,
        "customQuestions": [{"id": "1", "text": "What are your goals?"}],
        "advisorEmail": email,
    }
    record.update(extra)
    return record


def legacy_meeting(email="client@example.com", **extra):
    record = {
        "id": "local-meeting",
        "linkSlug": "intro",
        "clientName": "Casey Client",
        "clientEmail": email,
        "linkedin": "https://linkedin.com/in/casey",
        "date": "2025-03-14T00:00:00.000Z",
        "time": "2:00 PM",
        "duration": 30,
        "answers": [{"questionId": "1", "answer": "Retire early"}],
    }
    record.update(extra)
    return record


def snapshot(db):
    links = sorted((l.slug, l.user_id) for l in db.query(SchedulingLink).all())
    meetings = sorted((m.link_id, m.client_email, m.date) for m in db.query(Meeting).all())
    return links, meetings


class TestMigrate:
    def test_migrates_links_and_meetings(self, db, advisor):
        storage = InMemoryLegacyStorage(
            {"schedulingLinks": [legacy_link()], "meetings": [legacy_meeting()], "theme": "dark"}
        )

        report = MigrationService(db).migrate("advisor@example.com", storage)

        assert report.links_created == 1
        assert report.meetings_created == 1
        link = db.query(SchedulingLink).one()
        assert link.user_id == advisor.id
        assert link.custom_questions == [{"id": "1", "text": "What are your goals?"}]
        meeting = db.query(Meeting).one()
        assert meeting.link_id == link.id
        assert meeting.date == date(2025, 3, 14)
        assert meeting.profile_url == "https://linkedin.com/in/casey"
        assert meeting.answers == {"1": "Retire early"}

    def test_running_twice_equals_running_once(self, db, advisor):
        data = {"schedulingLinks": [legacy_link()], "meetings": [legacy_meeting()]}
        service = MigrationService(db)

        service.migrate("advisor@example.com", InMemoryLegacyStorage(data))
        once = snapshot(db)
        report = service.migrate("advisor@example.com", InMemoryLegacyStorage(data))

        assert snapshot(db) == once
        assert report.links_created == 0
        assert report.meetings_created == 0
        assert report.links_skipped == 1
        assert report.meetings_skipped == 1

    def test_legacy_keys_cleared_after_completion(self, db, advisor):
        storage = InMemoryLegacyStorage(
            {"scheduling_links": json.dumps([legacy_link()]), "scheduled_meetings": "[]", "theme": "dark"}
        )

        report = MigrationService(db).migrate("advisor@example.com", storage)

        assert report.cleared
        assert sorted(report.cleared_keys) == ["scheduled_meetings", "scheduling_links"]
        assert storage.list() == ["theme"]

    def test_user_must_exist(self, db):
        with pytest.raises(NotFoundError):
            MigrationService(db).migrate("nobody@example.com", InMemoryLegacyStorage())

    def test_no_storage_is_a_noop(self, db, advisor):
        report = MigrationService(db).migrate("advisor@example.com", None)
        assert not report.cleared
        assert db.query(SchedulingLink).count() == 0

    def test_empty_storage_is_a_noop(self, db, advisor):
        storage = InMemoryLegacyStorage({"theme": "dark"})
        report = MigrationService(db).migrate("advisor@example.com", storage)
        assert not report.cleared
        assert storage.list() == ["theme"]

    def test_other_advisors_links_are_ignored(self, db, advisor):
        storage = InMemoryLegacyStorage(
            {
                "schedulingLinks": [
                    legacy_link("mine"),
                    legacy_link("theirs", email="someone@example.com"),
                ]
            }
        )
        MigrationService(db).migrate("advisor@example.com", storage)
        assert [l.slug for l in db.query(SchedulingLink).all()] == ["mine"]

    def test_existing_slug_is_not_overwritten(self, db, advisor, make_link):
        make_link("intro", name="Server Version")
        report = MigrationService(db).migrate(
            "advisor@example.com", InMemoryLegacyStorage({"schedulingLinks": [legacy_link(name="Local")]})
        )
        assert report.links_skipped == 1
        assert db.query(SchedulingLink).one().name == "Server Version"

    def test_nested_advisor_email_and_legacy_link_id(self, db, advisor):
        link = legacy_link(advisor={"name": "Ada", "email": "Advisor@Example.com"})
        del link["advisorEmail"]
        meeting = legacy_meeting(answers={"1": "Buy a house"})
        del meeting["linkSlug"]
        meeting["linkId"] = link["id"]

        report = MigrationService(db).migrate(
            "advisor@example.com",
            InMemoryLegacyStorage({"scheduling_links": [link], "scheduled_meetings": [meeting]}),
        )

        assert report.links_created == 1
        assert report.meetings_created == 1
        assert db.query(Meeting).one().answers == {"1": "Buy a house"}

    def test_meeting_idempotence_key_ignores_time(self, db, advisor):
        storage = InMemoryLegacyStorage(
            {
                "schedulingLinks": [legacy_link()],
                "meetings": [legacy_meeting(), legacy_meeting(time="4:00 PM")],
            }
        )
        report = MigrationService(db).migrate("advisor@example.com", storage)
        assert report.meetings_created == 1
        assert report.meetings_skipped == 1

    def test_meetings_respect_the_use_cap(self, db, advisor):
        storage = InMemoryLegacyStorage(
            {
                "schedulingLinks": [legacy_link(maxUses=1)],
                "meetings": [legacy_meeting("a@example.com"), legacy_meeting("b@example.com")],
            }
        )
        report = MigrationService(db).migrate("advisor@example.com", storage)
        assert report.meetings_created == 1
        assert db.query(Meeting).count() == 1

    def test_invalid_records_are_counted_and_skipped(self, db, advisor):
        storage = InMemoryLegacyStorage(
            {
                "schedulingLinks": [legacy_link("Not A Slug"), legacy_link()],
                "meetings": [legacy_meeting(time="25:00"), legacy_meeting("ok@example.com")],
            }
        )
        report = MigrationService(db).migrate("advisor@example.com", storage)
        assert report.invalid_records == 2
        assert report.links_created == 1
        assert report.meetings_created == 1

    def test_meeting_without_client_email_is_invalid(self, db, advisor):
        storage = InMemoryLegacyStorage(
            {
                "schedulingLinks": [legacy_link()],
                "meetings": [legacy_meeting(email=None), legacy_meeting(email="")],
            }
        )
        report = MigrationService(db).migrate("advisor@example.com", storage)
        assert report.invalid_records == 2
        assert report.meetings_created == 0
        assert db.query(Meeting).count() == 0

    def test_failure_midway_keeps_migrated_records_and_legacy_keys(self, db, advisor, monkeypatch):
        storage = InMemoryLegacyStorage(
            {"schedulingLinks": [legacy_link("first"), legacy_link("second")], "meetings": []}
        )
        service = MigrationService(db)
        original = service._migrate_link
        calls = []

        def flaky(user, record, report):
            calls.append(record["slug"])
            if record["slug"] == "second":
                raise ConnectionError("database went away")
            return original(user, record, report)

        monkeypatch.setattr(service, "_migrate_link", flaky)
        with pytest.raises(ConnectionError):
            service.migrate("advisor@example.com", storage)

        assert [l.slug for l in db.query(SchedulingLink).all()] == ["first"]
        assert sorted(storage.list()) == ["meetings", "schedulingLinks"]

        monkeypatch.setattr(service, "_migrate_link", original)
        report = service.migrate("advisor@example.com", storage)
        assert report.links_created == 1
        assert report.links_skipped == 1
        assert storage.list() == []


def test_normalize_answers_shapes():
    assert normalize_answers([{"questionId": 1, "answer": "A"}]) == {"1": "A"}
    assert normalize_answers({"1": "A", "2": None}) == {"1": "A"}
    assert normalize_answers(None) == {}


class TestFileLegacyStorage:
    def test_reads_and_removes_keys(self, tmp_path):
        path = tmp_path / "local_storage.json"
        path.write_text(json.dumps({"meetings": "[]", "theme": "dark"}))
        storage = FileLegacyStorage(path)

        assert sorted(storage.list()) == ["meetings", "theme"]
        storage.remove("meetings")
        storage.put("seen", True)

        assert json.loads(path.read_text()) == {"theme": "dark", "seen": True}

    def test_missing_file_is_empty(self, tmp_path):
        assert FileLegacyStorage(tmp_path / "missing.json").list() == []


class TestCli:
    def test_usage(self):
        assert cli.main([]) == 2

    def test_migrates_export_file(self, tmp_path, engine, db, advisor, monkeypatch):
        from sqlalchemy.orm import sessionmaker

        monkeypatch.setattr(cli, "engine", engine)
        monkeypatch.setattr(cli, "SessionLocal", sessionmaker(bind=engine))
        path = tmp_path / "export.json"
        path.write_text(json.dumps({"schedulingLinks": [legacy_link()], "meetings": [legacy_meeting()]}))

        assert cli.main(["advisor@example.com", str(path)]) == 0
        assert json.loads(path.read_text()) == {}
        assert db.query(Meeting).count() == 1

    def test_unknown_user(self, tmp_path, engine, monkeypatch):
        from sqlalchemy.orm import sessionmaker

        monkeypatch.setattr(cli, "engine", engine)
        monkeypatch.setattr(cli, "SessionLocal", sessionmaker(bind=engine))
        path = tmp_path / "export.json"
        path.write_text("{}")
        assert cli.main(["nobody@example.com", str(path)]) == 1
