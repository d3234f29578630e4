"""Tests for the FastAPI routes.

Covers:
- POST /imports, /imports/preview: pasted text and file uploads
- /protocols: list, detail, edit, complete/reopen, reassign, bulk reassign, history
- /dashboard and /dashboard/due-dates
- /reviewers: list, roster import, lookup, reviewer dashboard, complete-all
- /notices and /system-notices
- /notifications: settings, preview, run
- /exports and /audit
"""
from __future__ import annotations

from pathlib import Path
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from erec.notification.email_sender import DeliveryReceipt

ROSTER_FILE = Path(__file__).resolve().parent.parent / "config" / "reviewers.yaml"

UPLOAD = (
    "Main Folder\tSPUP REC Code\tReviewer\tDocument\tLink\n"
    "Sleep Quality\tSPUP_0101\tDRAPL-001\tForm 06B1 PRA\thttps://drive/1\n"
    "Sleep Quality\tSPUP_0101\tDRNRD-002\tForm 06C ICA\thttps://drive/1\n"
    "Microplastics\tSPUP_0102\tDRNRD-002\tForm 06B2 PRA-EX\thttps://drive/2\n"
)


def _entry(reviewer_id, name, status="In Progress", due="2025-05-10"):
    return {"id": reviewer_id, "name": name, "status": status, "document_type": "Form 06B1 PRA", "due_date": due}


def _import(client: TestClient, **form) -> dict:
    data = {"text": UPLOAD, "file_name": "april_1stweek.csv", **form}
    resp = client.post("/imports", data=data)
    assert resp.status_code == 200, resp.text
    return resp.json()


@pytest.fixture()
def roster(add_reviewer):
    add_reviewer("DRAPL-001", "Dr. Allan", "allan@spup.edu.ph")
    add_reviewer("DRNRD-002", "Dr. Nora")
    add_reviewer("DRCUG-003", "Dr. Cora")


# ===========================================================================
# Imports
# ===========================================================================


class TestImports:
    def test_import_pasted_text(self, client: TestClient, roster) -> None:
        body = _import(client)
        assert body["month"] == "April"
        assert body["week"] == "week-1"
        assert body["created"] == 2
        assert body["paths"] == ["April/week-1/SPUP_0101", "April/week-1/SPUP_0102"]

        protocols = client.get("/protocols").json()
        sleep = next(p for p in protocols if p["rec_code"] == "SPUP_0101")
        assert sleep["release_period"] == "April 1st Week"
        assert sleep["due_date"] == "2025-04-19"
        assert [r["name"] for r in sleep["reviewers"]] == ["Dr. Allan", "Dr. Nora"]
        assert sleep["status_label"] == "Overdue"

    def test_import_file_upload(self, client: TestClient) -> None:
        resp = client.post(
            "/imports",
            files={"file": ("first-release_undergraduate.csv", UPLOAD.replace("\t", ",").encode(), "text/csv")},
            data={"due_date": "2025-06-01"},
        )
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert (body["month"], body["week"]) == ("first-release", "week-1")

        protocol = client.get("/protocols", params={"month": "first-release"}).json()[0]
        assert protocol["academic_level"] == "Undergraduate"
        assert protocol["due_date"] == "2025-06-01"

    def test_reimport_skips_unless_overwrite(self, client: TestClient) -> None:
        _import(client)
        again = _import(client)
        assert (again["created"], again["skipped"]) == (0, 2)
        overwritten = _import(client, overwrite="true")
        assert overwritten["updated"] == 2

    def test_preview_writes_nothing(self, client: TestClient) -> None:
        resp = client.post("/imports/preview", data={"text": UPLOAD, "file_name": "april_1stweek.csv"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["release"]["release_period"] == "April 1st Week"
        assert body["reviewer_counts"] == {"DRAPL-001": 1, "DRNRD-002": 2}
        assert len(body["protocols"]) == 2
        assert client.get("/protocols").json() == []

    def test_unknown_release_needs_month_and_week(self, client: TestClient) -> None:
        resp = client.post("/imports", data={"text": UPLOAD, "file_name": "upload.csv"})
        assert resp.status_code == 400

        body = _import(client, file_name="upload.csv", month="June", week="week-2")
        assert body["paths"][0] == "June/week-2/SPUP_0101"

    def test_missing_input(self, client: TestClient) -> None:
        assert client.post("/imports", data={"file_name": "april_1stweek.csv"}).status_code == 400

    def test_bad_due_date(self, client: TestClient) -> None:
        resp = client.post("/imports", data={"text": UPLOAD, "file_name": "april_1stweek.csv", "due_date": "June 1"})
        assert resp.status_code == 400

    def test_unreadable_upload(self, client: TestClient) -> None:
        resp = client.post("/imports", data={"text": "   ", "file_name": "april_1stweek.csv"})
        assert resp.status_code == 400


# ===========================================================================
# Protocols
# ===========================================================================


class TestProtocols:
    def test_list_filters(self, client: TestClient, make_protocol) -> None:
        make_protocol(rec_code="A", name="Late", due_date="2025-04-28")
        make_protocol(rec_code="B", name="Soon", due_date="2025-05-02", release_period="First Release")
        make_protocol(rec_code="C", name="Undated", due_date=None)

        assert len(client.get("/protocols").json()) == 3
        assert [p["rec_code"] for p in client.get("/protocols", params={"status": "overdue"}).json()] == ["A"]
        assert [p["rec_code"] for p in client.get("/protocols", params={"status": "due-soon"}).json()] == ["B"]
        assert [p["rec_code"] for p in client.get("/protocols", params={"search": "undat"}).json()] == ["C"]
        assert client.get("/protocols", params={"status": "late"}).status_code == 400

    def test_months_and_releases(self, client: TestClient, make_protocol) -> None:
        make_protocol(rec_code="A", month="April", release_period="April 1st Week")
        make_protocol(rec_code="B", month="first-release", release_period="First Release")
        assert client.get("/protocols/months").json() == ["April", "first-release"]
        assert client.get("/protocols/releases").json() == ["First Release", "April 1st Week"]

    def test_detail_and_not_found(self, client: TestClient, make_protocol) -> None:
        protocol = make_protocol()
        body = client.get(f"/protocols/{protocol.id}").json()
        assert body["path"] == "April/week-1/SPUP_2025_0101_SR_JD"
        assert client.get(f"/protocols/{uuid4()}").status_code == 404

    def test_patch(self, client: TestClient, make_protocol) -> None:
        protocol = make_protocol()
        resp = client.patch(f"/protocols/{protocol.id}", json={"due_date": "2025-06-01", "adviser": "Dr. Reyes"})
        assert resp.status_code == 200
        assert resp.json()["due_date"] == "2025-06-01"
        assert resp.json()["adviser"] == "Dr. Reyes"

        events = client.get(f"/protocols/{protocol.id}/history").json()["events"]
        assert events[0]["event_type"] == "protocol_updated"
        assert events[0]["decision"] == "adviser,due_date"

    @pytest.mark.parametrize(
        "payload", [{"due_date": "06/01/2025"}, {"status": "Overdue"}, {"protocol_name": "  "}],
    )
    def test_patch_validation(self, client: TestClient, make_protocol, payload) -> None:
        protocol = make_protocol()
        assert client.patch(f"/protocols/{protocol.id}", json=payload).status_code == 400

    def test_complete_and_reopen(self, client: TestClient, make_protocol) -> None:
        protocol = make_protocol(reviewers=[_entry("DRAPL-001", "Dr. Allan")])
        url = f"/protocols/{protocol.id}/reviewers/DRAPL-001"

        done = client.post(f"{url}/complete", json={"reviewer_name": "Dr. Allan"}).json()
        assert done["status"] == "Completed"
        assert done["reviewers"][0]["status"] == "Completed"

        reopened = client.post(f"{url}/reopen", json={"reviewer_name": "Dr. Allan"}).json()
        assert reopened["status"] == "In Progress"

    def test_complete_without_reviewers(self, client: TestClient, make_protocol) -> None:
        protocol = make_protocol()
        resp = client.post(f"/protocols/{protocol.id}/reviewers/DRAPL-001/complete", json={"reviewer_name": "Dr. Allan"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "Completed"
        assert [r["id"] for r in resp.json()["reviewers"]] == ["DRAPL-001"]

    def test_reassign(self, client: TestClient, roster, make_protocol) -> None:
        protocol = make_protocol(reviewers=[_entry("DRAPL-001", "Dr. Allan"), _entry("DRNRD-002", "Dr. Nora")])

        assert client.get(f"/protocols/{protocol.id}/available-reviewers").json() == [
            {"id": "DRCUG-003", "name": "Dr. Cora"},
        ]

        resp = client.post(f"/protocols/{protocol.id}/reassign", json={
            "current_reviewer_id": "DRAPL-001",
            "new_reviewer_id": "DRCUG-003",
            "reason": "On leave",
        })
        assert resp.status_code == 200
        body = resp.json()
        assert [r["id"] for r in body["reviewers"]] == ["DRCUG-003", "DRNRD-002"]
        assert body["reviewers"][0]["due_date"] == "2025-05-24"

        history = client.get(f"/protocols/{protocol.id}/history").json()
        assert history["reassignment_history"][0]["to"] == "Dr. Cora"
        assert history["events"][0]["rationale"] == "On leave"

    def test_reassign_errors(self, client: TestClient, roster, make_protocol) -> None:
        protocol = make_protocol(reviewers=[_entry("DRAPL-001", "Dr. Allan")])
        url = f"/protocols/{protocol.id}/reassign"

        missing = client.post(url, json={"current_reviewer_id": "DRNRD-002", "new_reviewer_id": "DRCUG-003", "reason": "x"})
        assert missing.status_code == 404

        no_reason = client.post(url, json={"current_reviewer_id": "DRAPL-001", "new_reviewer_id": "DRCUG-003", "reason": ""})
        assert no_reason.status_code == 400

        off_roster = client.post(url, json={"current_reviewer_id": "DRAPL-001", "new_reviewer_id": "NOPE", "reason": "x"})
        assert off_roster.status_code == 400

    def test_reassign_to_reviewer_already_assigned(self, client: TestClient, roster, make_protocol) -> None:
        protocol = make_protocol(reviewers=[_entry("DRAPL-001", "Dr. Allan"), _entry("DRNRD-002", "Dr. Nora")])
        resp = client.post(f"/protocols/{protocol.id}/reassign", json={
            "current_reviewer_id": "DRAPL-001",
            "new_reviewer_id": "DRNRD-002",
            "reason": "On leave",
        })
        assert resp.status_code == 400
        assert "already assigned" in resp.json()["detail"]

    def test_bulk_reassign(self, client: TestClient, roster, make_protocol) -> None:
        first = make_protocol(rec_code="A", reviewers=[_entry("DRAPL-001", "Dr. Allan")])
        second = make_protocol(rec_code="B", reviewers=[_entry("DRNRD-002", "Dr. Nora")])
        missing = uuid4()

        resp = client.post("/protocols/bulk-reassign", json={
            "protocol_ids": [str(first.id), str(second.id), str(missing)],
            "new_reviewer_id": "DRCUG-003",
        })
        assert resp.status_code == 200
        assert resp.json() == {"reassigned": 2, "not_found": [str(missing)]}
        assert client.get(f"/protocols/{second.id}").json()["reviewers"][0]["id"] == "DRCUG-003"


# ===========================================================================
# Dashboard
# ===========================================================================


class TestDashboard:
    def test_summary(self, client: TestClient, make_protocol) -> None:
        make_protocol(rec_code="A", name="Late", due_date="2025-04-28", reviewers=[_entry("DRAPL-001", "Dr. Allan")])
        make_protocol(rec_code="B", name="Soon", due_date="2025-05-03", reviewers=[_entry("DRNRD-002", "Dr. Nora")])

        body = client.get("/dashboard").json()
        assert body["stats"]["total_protocols"] == 2
        assert body["stats"]["overdue"] == 1
        assert body["stats"]["due_soon"] == 1
        assert body["overdue"][0]["protocol_name"] == "Late"
        assert {s["reviewer_id"] for s in body["reviewer_stats"]} == {"DRAPL-001", "DRNRD-002"}

    def test_due_dates(self, client: TestClient, make_protocol) -> None:
        make_protocol(rec_code="A", name="Late", due_date="2025-04-28")
        make_protocol(rec_code="B", name="Undated", due_date=None)

        body = client.get("/dashboard/due-dates", params={"status": "overdue"}).json()
        assert body["counts"] == {"total": 1, "overdue": 1, "due_soon": 0, "completed": 0}
        assert [p["protocol_name"] for p in body["protocols"]] == ["Late"]
        assert client.get("/dashboard/due-dates", params={"status": "bad"}).status_code == 400


# ===========================================================================
# Reviewers
# ===========================================================================


class TestReviewers:
    def test_list(self, client: TestClient, roster, make_protocol) -> None:
        make_protocol(reviewers=[_entry("GUEST-1", "Dr. Guest")])
        ids = [r["id"] for r in client.get("/reviewers").json()]
        assert ids == ["DRAPL-001", "DRCUG-003", "DRNRD-002", "GUEST-1"]

    def test_import_roster(self, client: TestClient, monkeypatch) -> None:
        from erec.core.settings import get_settings

        monkeypatch.setenv("REVIEWER_ROSTER_PATH", str(ROSTER_FILE))
        get_settings.cache_clear()

        assert client.post("/reviewers/import").json() == {"created": 26, "updated": 0}
        assert len(client.get("/reviewers").json()) == 26

    def test_import_missing_roster(self, client: TestClient, monkeypatch, tmp_path) -> None:
        from erec.core.settings import get_settings

        monkeypatch.setenv("REVIEWER_ROSTER_PATH", str(tmp_path / "missing.yaml"))
        get_settings.cache_clear()

        assert client.post("/reviewers/import").status_code == 404

    def test_lookup(self, client: TestClient, roster) -> None:
        assert client.get("/reviewers/lookup", params={"q": "cora"}).json() == {"id": "DRCUG-003", "name": "Dr. Cora"}
        assert client.get("/reviewers/lookup", params={"q": "nobody"}).status_code == 404
        assert client.get("/reviewers/lookup", params={"q": " "}).status_code == 400

    def test_reviewer_dashboard(self, client: TestClient, roster, make_protocol) -> None:
        make_protocol(rec_code="A", name="Late", reviewers=[_entry("DRAPL-001", "Dr. Allan", due="2025-04-28")])
        make_protocol(
            rec_code="B", name="Done", release_period="First Release",
            reviewers=[_entry("DRAPL-001", "Dr. Allan", status="Completed")],
        )
        make_protocol(rec_code="C", name="Other", reviewers=[_entry("DRNRD-002", "Dr. Nora")])

        body = client.get("/reviewers/DRAPL-001/dashboard").json()
        assert body["reviewer"] == {"id": "DRAPL-001", "name": "Dr. Allan"}
        assert body["counts"]["total"] == 2
        assert body["counts"]["overdue"] == 1
        assert list(body["releases"]) == ["First Release", "April 1st Week"]
        late = body["releases"]["April 1st Week"][0]
        assert late["reviewer_label"] == "Overdue"
        assert late["form_name"] == "Protocol Review Assessment Form"

        filtered = client.get("/reviewers/DRAPL-001/dashboard", params={"release": "First Release"}).json()
        assert filtered["counts"]["total"] == 1

    def test_complete_all(self, client: TestClient, roster, make_protocol) -> None:
        make_protocol(rec_code="A", reviewers=[_entry("DRAPL-001", "Dr. Allan")])
        make_protocol(rec_code="B", release_period="First Release", reviewers=[_entry("DRAPL-001", "Dr. Allan")])

        resp = client.post("/reviewers/DRAPL-001/complete-all", json={"release_period": "First Release"})
        assert resp.json() == {"updated": 1}
        resp = client.post("/reviewers/DRAPL-001/complete-all", json={})
        assert resp.json() == {"updated": 1}


# ===========================================================================
# Notices
# ===========================================================================


class TestNotices:
    def test_crud_and_likes(self, client: TestClient) -> None:
        created = client.post("/notices", json={"title": "Meeting", "content": "Friday 3pm", "priority": "high"})
        assert created.status_code == 200
        notice_id = created.json()["id"]

        liked = client.post(f"/notices/{notice_id}/like", json={"reviewer_id": "DRAPL-001"}).json()
        assert liked["likes"] == ["DRAPL-001"]

        updated = client.patch(f"/notices/{notice_id}", json={"title": "Meeting moved", "content": "Monday", "priority": "low"})
        assert updated.json()["title"] == "Meeting moved"
        assert updated.json()["like_count"] == 1

        assert [n["id"] for n in client.get("/notices").json()] == [notice_id]
        assert client.delete(f"/notices/{notice_id}").status_code == 200
        assert client.get("/notices").json() == []
        assert client.delete(f"/notices/{notice_id}").status_code == 404

    def test_views(self, client: TestClient) -> None:
        client.post("/notices", json={"title": "Low", "content": "x", "priority": "low"})
        client.post("/notices", json={"title": "High", "content": "x", "priority": "high"})
        client.post("/notices", json={"title": "Old", "content": "x", "expires_at": "2000-01-01T00:00:00Z"})

        assert [n["title"] for n in client.get("/notices/active").json()] == ["High", "Low"]
        assert client.get("/notices/recent-count").json() == {"count": 2}
        stats = client.get("/notices/stats").json()
        assert (stats["total"], stats["active"], stats["high_priority"]) == (3, 2, 1)

    def test_validation(self, client: TestClient) -> None:
        assert client.post("/notices", json={"title": "x", "content": "y", "priority": "urgent"}).status_code == 400
        assert client.patch(f"/notices/{uuid4()}", json={"title": "x", "content": "y"}).status_code == 404

    def test_system_notices(self, client: TestClient) -> None:
        resp = client.post("/system-notices", json={
            "title": "Deadline extended",
            "message": "All April reviews are due 15 May",
            "expires_at": "2099-01-01T00:00:00Z",
            "key_points": ["April releases only"],
        })
        assert resp.status_code == 200
        client.post("/system-notices", json={"title": "Old", "message": "m", "expires_at": "2000-01-01T00:00:00Z"})

        active = client.get("/system-notices").json()
        assert [n["title"] for n in active] == ["Deadline extended"]
        assert active[0]["key_points"] == ["April releases only"]


# ===========================================================================
# Notifications
# ===========================================================================


class _RecordingSender:
    def __init__(self):
        self.calls = []

    def send(self, recipient, email, subject, body):
        from datetime import datetime, timezone

        self.calls.append((recipient, subject))
        return DeliveryReceipt(recipient, email or "", subject, "SENT", datetime.now(timezone.utc), "250 OK", 1)


class TestNotifications:
    def test_settings_round_trip(self, client: TestClient) -> None:
        assert client.get("/notifications/settings").json()["enabled"] is False

        resp = client.put("/notifications/settings", json={"enabled": True, "admin_emails": ["chair@spup.edu.ph"]})
        assert resp.status_code == 200
        assert resp.json()["admin_emails"] == ["chair@spup.edu.ph"]
        assert client.get("/notifications/settings").json()["enabled"] is True

        assert client.put("/notifications/settings", json={"frequency": "hourly"}).status_code == 400

    def test_preview(self, client: TestClient, make_protocol) -> None:
        make_protocol(rec_code="A", name="Late", due_date="2025-04-28", reviewer="DRAPL-001")
        body = client.get("/notifications/preview").json()
        assert body["overdue_count"] == 1
        assert "Late" in body["overdue_html"]
        assert body["due_soon_html"] == ""

    def test_run(self, client: TestClient, roster, make_protocol) -> None:
        from erec.api.deps import get_digest_sender
        from erec.api.main import app

        sender = _RecordingSender()
        app.dependency_overrides[get_digest_sender] = lambda: sender
        make_protocol(rec_code="A", name="Late", due_date="2025-04-28", reviewers=[_entry("DRAPL-001", "Dr. Allan")])

        assert client.post("/notifications/run", json={}).json()["ran"] is False

        body = client.post("/notifications/run", json={"force": True}).json()
        assert body["ran"] is True
        assert body["sent"] == 1
        assert sender.calls == [("DRAPL-001", "e-REC: Overdue protocol reviews")]


# ===========================================================================
# Exports and audit
# ===========================================================================


class TestExports:
    def test_csv_download(self, client: TestClient, make_protocol) -> None:
        make_protocol()
        resp = client.get("/exports/protocols.csv")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert resp.headers["content-disposition"] == 'attachment; filename="protocols_export_2025-05-01.csv"'
        assert "SPUP_2025_0101_SR_JD" in resp.text

    def test_json_download(self, client: TestClient, roster) -> None:
        resp = client.get("/exports/reviewers.json")
        assert [r["id"] for r in resp.json()] == ["DRAPL-001", "DRCUG-003", "DRNRD-002"]

    def test_errors(self, client: TestClient) -> None:
        assert client.get("/exports/users.csv").status_code == 404
        assert client.get("/exports/protocols.xml").status_code == 400


class TestAudit:
    def test_recent_and_protocol_history(self, client: TestClient, make_protocol) -> None:
        protocol = make_protocol(reviewers=[_entry("DRAPL-001", "Dr. Allan")])
        client.post(f"/protocols/{protocol.id}/reviewers/DRAPL-001/complete", json={"reviewer_name": "Dr. Allan"})

        recent = client.get("/audit/recent").json()
        assert recent[0]["event_type"] == "review_completed"

        history = client.get(f"/audit/protocols/{protocol.id}").json()
        assert [e["actor"] for e in history] == ["DRAPL-001"]
        assert client.get("/audit/protocols/unknown").status_code == 404

    def test_reviewer_trail(self, client: TestClient, make_protocol) -> None:
        protocol = make_protocol(reviewers=[_entry("DRAPL-001", "Dr. Allan")])
        client.post(f"/protocols/{protocol.id}/reviewers/DRAPL-001/complete", json={"reviewer_name": "Dr. Allan"})

        assert [e["event_type"] for e in client.get("/audit/reviewers/DRAPL-001").json()] == ["review_completed"]
        assert client.get("/audit/reviewers/DRNRD-002").json() == []
        assert client.get("/audit/recent", params={"limit": 0}).status_code == 422
