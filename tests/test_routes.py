"""
Route tests against a scripted database connection
"""
import uuid
from decimal import Decimal

import pytest

import otp_store
from tests.conftest import make_user


class TestRatings:

    def test_missing_fields(self, client_for, worker):
        response = client_for(worker).post("/api/ratings", json={"jobId": "j1"})
        assert response.status_code == 400
        assert response.json() == {"error": "toUserId, jobId, and rating are required"}

    def test_rating_out_of_range(self, client_for, worker):
        response = client_for(worker).post("/api/ratings", json={"toUserId": "u2", "jobId": "j1", "rating": 6})
        assert response.status_code == 400
        assert response.json()["error"] == "Rating must be between 1 and 5"

    def test_fractional_rating_rejected(self, client_for, worker, conn):
        response = client_for(worker).post("/api/ratings", json={"toUserId": "u2", "jobId": "j1", "rating": 4.5})
        assert response.status_code == 400
        assert response.json()["error"] == "Rating must be a whole number of stars"
        assert conn.executed == []

    def test_cannot_rate_yourself(self, client_for, worker):
        body = {"toUserId": str(worker["id"]), "jobId": "j1", "rating": 5}
        response = client_for(worker).post("/api/ratings", json=body)
        assert response.status_code == 400
        assert response.json()["error"] == "Cannot rate yourself"

    def test_duplicate_rating_conflicts(self, client_for, worker, conn):
        conn.results = [{"?column?": 1}]
        response = client_for(worker).post("/api/ratings", json={"toUserId": "u2", "jobId": "j1", "rating": 4})
        assert response.status_code == 409
        assert response.json()["error"] == "You have already rated this person for this job"

    def test_rating_recomputes_trust(self, client_for, worker, conn):
        rating_row = {"id": uuid.uuid4(), "job_id": "j1", "from_user_id": worker["id"],
                      "to_user_id": "u2", "rating": 5, "feedback": "Great work"}
        conn.results = [
            None,                                                                         # no duplicate
            rating_row,
            {"total": 1, "average": 5},
            None,                                                                         # no trust row yet
            {"role": "employer"},
        ]

        response = client_for(worker).post(
            "/api/ratings", json={"toUserId": "u2", "jobId": "j1", "rating": 5, "feedback": "Great work"}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["trustScore"] == {"newScore": 80, "newLevel": "trusted", "averageRating": 5.0, "totalRatings": 1}
        _, params = conn.find("INSERT INTO notifications")
        assert params[2] == "New Rating Received"

    def test_listing_needs_a_filter(self, client_for, worker):
        assert client_for(worker).get("/api/ratings").status_code == 400


class TestAdminPenalize:

    def test_admin_only(self, client_for, worker):
        response = client_for(worker).post("/api/admin/penalize", json={"reportId": "r1", "penalty": 10})
        assert response.status_code == 403

    def test_requires_penalty(self, client_for, admin):
        response = client_for(admin).post("/api/admin/penalize", json={"reportId": "r1"})
        assert response.status_code == 400

    def test_missing_report(self, client_for, admin, conn):
        conn.results = [None]
        response = client_for(admin).post("/api/admin/penalize", json={"reportId": "r1", "penalty": 10})
        assert response.status_code == 404

    def test_suspension_zeroes_score(self, client_for, admin, conn):
        conn.results = [
            {"reported_id": "u9", "reported_user_id": None},
            {"score": 88, "complaint_count": 2},
        ]

        response = client_for(admin).post("/api/admin/penalize", json={"reportId": "r1", "penalty": 9999})

        assert response.status_code == 200
        assert response.json()["data"] == {"newScore": 0, "newLevel": "basic", "newComplaintCount": 3}
        _, params = conn.find("UPDATE reports SET status = 'resolved'")
        assert params == ("Account suspended by admin.", "r1")
        _, params = conn.find("INSERT INTO notifications")
        assert params[2] == "Account Suspended"

    def test_partial_penalty_defaults_to_fifty(self, client_for, admin, conn):
        conn.results = [{"reported_id": None, "reported_user_id": "u9"}, None]
        response = client_for(admin).post("/api/admin/penalize", json={"reportId": "r1", "penalty": 15})
        assert response.json()["data"] == {"newScore": 35, "newLevel": "basic", "newComplaintCount": 1}


class TestChatMessages:

    def conversation(self, *participants):
        return {"id": uuid.uuid4(), "participants": list(participants)}

    def test_blocked_message_not_stored(self, client_for, worker, conn):
        conv = self.conversation(worker["id"], uuid.uuid4())
        conn.results = [conv]

        response = client_for(worker).post(
            "/api/chat/messages",
            json={"conversationId": str(conv["id"]), "message": "call me on 9876543210"},
        )

        assert response.status_code == 400
        assert response.json()["blocked"] is True
        assert response.json()["category"] == "phone"
        assert not any("INSERT INTO chat_messages" in sql for sql in conn.statements())

    def test_outsider_cannot_post(self, client_for, worker, conn):
        conn.results = [self.conversation(uuid.uuid4(), uuid.uuid4())]
        response = client_for(worker).post(
            "/api/chat/messages", json={"conversationId": str(uuid.uuid4()), "message": "hello"}
        )
        assert response.status_code == 403

    def test_cannot_spoof_sender(self, client_for, worker):
        response = client_for(worker).post(
            "/api/chat/messages",
            json={"conversationId": "c1", "message": "hello", "senderId": str(uuid.uuid4())},
        )
        assert response.status_code == 403

    def test_clean_message_stored(self, client_for, worker, conn):
        conv = self.conversation(worker["id"], uuid.uuid4())
        stored = {"id": uuid.uuid4(), "conversation_id": conv["id"], "sender_id": worker["id"],
                  "message": "See you at 9", "read": False}
        conn.results = [conv, stored]

        response = client_for(worker).post(
            "/api/chat/messages", json={"conversationId": str(conv["id"]), "message": "See you at 9"}
        )

        assert response.status_code == 201
        assert response.json()["data"]["message"] == "See you at 9"
        assert any("UPDATE chat_conversations SET updated_at" in sql for sql in conn.statements())

    def test_message_length_cap(self, client_for, worker):
        response = client_for(worker).post(
            "/api/chat/messages", json={"conversationId": "c1", "message": "x" * 2001}
        )
        assert response.status_code == 400


class TestEscrow:

    def tx(self, employer, worker, status="held"):
        return {"id": uuid.uuid4(), "job_id": uuid.uuid4(), "employer_id": employer["id"],
                "worker_id": worker["id"], "amount": Decimal("1000.00"), "status": status}

    def test_refund_requires_held(self, client_for, worker, conn):
        employer = make_user("employer")
        conn.results = [self.tx(employer, worker, status="pending")]
        response = client_for(employer).patch(f"/api/escrow/{uuid.uuid4()}", json={"status": "refunded"})
        assert response.status_code == 400

    def test_worker_cannot_release(self, client_for, worker, conn):
        employer = make_user("employer")
        conn.results = [self.tx(employer, worker)]
        response = client_for(worker).patch(f"/api/escrow/{uuid.uuid4()}", json={"status": "released"})
        assert response.status_code == 403

    def test_release_takes_commission(self, client_for, worker, conn):
        employer = make_user("employer")
        tx = self.tx(employer, worker)
        released = dict(tx, status="released", commission=Decimal("100.00"))
        conn.results = [
            tx,
            released,
            {"total": 0, "average": 0},
            {"job_completion_rate": 0, "complaint_count": 0, "successful_payments": 1},
            {"role": "worker"},
            {"completed": 0, "engaged": 0},
        ]

        response = client_for(employer).patch(f"/api/escrow/{tx['id']}", json={"status": "released"})

        assert response.status_code == 200
        _, params = conn.find("SET status = 'released', commission = %s")
        assert params[0] == Decimal("100.00")
        _, params = conn.find("INSERT INTO notifications")
        assert params[2] == "Payment Released"
        assert "900.00" in params[3]

    def test_concurrent_release_conflicts(self, client_for, worker, conn):
        employer = make_user("employer")
        tx = self.tx(employer, worker)
        conn.results = [tx, None]

        response = client_for(employer).patch(f"/api/escrow/{tx['id']}", json={"status": "released"})

        assert response.status_code == 409
        sql, params = conn.find("SET status = 'released', commission = %s")
        assert "AND status = %s" in sql
        assert params[2] == "held"
        assert not any("successful_payments + 1" in s for s in conn.statements())
        assert not any("INSERT INTO notifications" in s for s in conn.statements())


class TestEmailOtp:

    @pytest.fixture(autouse=True)
    def fresh_store(self):
        otp_store.clear()
        yield
        otp_store.clear()

    def test_invalid_email(self, client_for, worker):
        response = client_for(worker).post("/api/email/send-otp", json={"email": "not-an-email"})
        assert response.status_code == 400

    def test_send_then_verify(self, client_for, worker):
        client = client_for(worker)

        sent = client.post("/api/email/send-otp", json={"email": "  Ravi@Example.COM "})
        assert sent.status_code == 200
        otp = sent.json()["otp"]

        verified = client.put("/api/email/send-otp", json={"email": "ravi@example.com", "otp": otp})
        assert verified.json() == {"success": True, "message": "Email verified successfully."}

    def test_verify_requires_both_fields(self, client_for, worker):
        response = client_for(worker).put("/api/email/send-otp", json={"email": "a@b.com"})
        assert response.status_code == 400
        assert response.json()["error"] == "email and otp are required."

    def test_unknown_transactional_type(self, client_for, worker):
        response = client_for(worker).post("/api/email/transactional", json={"to": "a@b.com", "type": "spam"})
        assert response.status_code == 400


class TestUsers:

    def test_cannot_edit_someone_else(self, client_for, worker):
        response = client_for(worker).patch(f"/api/users/{uuid.uuid4()}", json={"fullName": "X"})
        assert response.status_code == 403

    def test_cannot_promote_self(self, client_for, worker):
        response = client_for(worker).patch(f"/api/users/{worker['id']}", json={"role": "admin"})
        assert response.status_code == 403

    def test_self_edit(self, client_for, worker, conn):
        conn.results = [dict(worker, full_name="Ravi K")]
        response = client_for(worker).patch(f"/api/users/{worker['id']}", json={"fullName": "Ravi K"})
        assert response.status_code == 200
        assert response.json()["data"]["fullName"] == "Ravi K"
        sql, params = conn.find("UPDATE users SET")
        assert "full_name = %s" in sql
        assert params == ["Ravi K", str(worker["id"])]

    def test_user_list_is_admin_only(self, client_for, worker):
        assert client_for(worker).get("/api/users").status_code == 403


class TestReanalyzeAssessment:

    def test_admin_only(self, client_for, worker):
        response = client_for(worker).post("/api/ai/analyze-assessment", json={"assessmentId": str(uuid.uuid4())})
        assert response.status_code == 403

    def test_missing_assessment(self, client_for, admin, conn):
        response = client_for(admin).post("/api/ai/analyze-assessment", json={"assessmentId": str(uuid.uuid4())})
        assert response.status_code == 404
        assert response.json()["error"] == "Assessment not found"
