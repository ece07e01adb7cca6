"""
Tests for the trust score formula and its persistence
"""
import pytest

from tests.conftest import FakeConnection
from trust import (
    SUSPENSION_PENALTY,
    apply_penalty,
    compute_trust_score,
    record_successful_payment,
    recalculate_trust_score,
    trust_level_for,
)


class TestComputeTrustScore:
    """Pure formula"""

    def test_new_user_is_basic_fifty(self):
        assert compute_trust_score(0, 0, 0, 0, 0) == (50, "basic")

    def test_rating_bonus_ignored_without_ratings(self):
        """An average with zero ratings behind it earns nothing"""
        assert compute_trust_score(5, 0, 0, 0, 0) == (50, "basic")

    def test_perfect_rating_adds_thirty(self):
        assert compute_trust_score(5, 3, 0, 0, 0) == (80, "trusted")

    def test_one_star_average_adds_nothing(self):
        assert compute_trust_score(1, 4, 0, 0, 0)[0] == 50

    def test_completion_and_payment_bonuses(self):
        # 50 + 100 * 0.25 + 2 * 3
        assert compute_trust_score(0, 0, 100, 0, 3) == (81, "trusted")

    def test_payment_bonus_capped_at_fifteen(self):
        assert compute_trust_score(0, 0, 0, 0, 50)[0] == 65

    def test_complaints_subtract_eight_each(self):
        assert compute_trust_score(0, 0, 0, 2, 0) == (34, "basic")

    def test_score_clamped_to_range(self):
        assert compute_trust_score(5, 10, 100, 0, 20)[0] == 100
        assert compute_trust_score(0, 0, 0, 20, 0)[0] == 0

    def test_rounds_half_up(self):
        # 50 + ((3.5 - 1) / 4) * 30 = 68.75 -> 69
        assert compute_trust_score(3.5, 2, 0, 0, 0)[0] == 69
        # 50 + 2 * 0.25 = 50.5 -> 51
        assert compute_trust_score(0, 0, 2, 0, 0)[0] == 51


class TestLevels:
    @pytest.mark.parametrize("score,level", [
        (0, "basic"), (59, "basic"), (60, "active"), (79, "active"), (80, "trusted"), (100, "trusted"),
    ])
    def test_thresholds(self, score, level):
        assert trust_level_for(score) == level


class TestApplyPenalty:
    def test_subtracts_points(self):
        assert apply_penalty(70, 15) == (55, "basic")

    def test_never_below_zero(self):
        assert apply_penalty(10, 40) == (0, "basic")

    def test_suspension_zeroes_score(self):
        assert apply_penalty(95, SUSPENSION_PENALTY) == (0, "basic")


class TestRecalculate:
    """Database round trip against a scripted connection"""

    @pytest.mark.asyncio
    async def test_worker_completion_rate_from_applications(self):
        conn = FakeConnection([
            {"total": 2, "average": 5},                                                   # ratings
            {"job_completion_rate": 0, "complaint_count": 1, "successful_payments": 0},  # existing row
            {"role": "worker"},
            {"completed": 1, "engaged": 2},
        ])

        result = await recalculate_trust_score(conn, "u1")

        # 50 + 30 + 50 * 0.25 - 8 = 84.5 -> 85
        assert result == {"score": 85, "level": "trusted", "averageRating": 5.0, "totalRatings": 2}
        _, params = conn.find("INSERT INTO trust_scores")
        assert params[:3] == ("u1", 85, "trusted")
        assert params[5] == 50.0
        _, params = conn.find("UPDATE users SET trust_score")
        assert params == (85, "trusted", "u1")

    @pytest.mark.asyncio
    async def test_worker_without_applications_has_zero_completion(self):
        conn = FakeConnection([
            {"total": 0, "average": 0},
            {"job_completion_rate": 80, "complaint_count": 0, "successful_payments": 0},
            {"role": "worker"},
            {"completed": 0, "engaged": 0},
        ])

        result = await recalculate_trust_score(conn, "w2")

        assert result["score"] == 50
        assert result["level"] == "basic"
        _, params = conn.find("INSERT INTO trust_scores")
        assert params[5] == 0

    @pytest.mark.asyncio
    async def test_employer_keeps_stored_completion_rate(self):
        conn = FakeConnection([
            {"total": 0, "average": 0},
            {"job_completion_rate": 40, "complaint_count": 0, "successful_payments": 0},
            {"role": "employer"},
        ])

        result = await recalculate_trust_score(conn, "e1")

        assert result["score"] == 60
        assert not any("FROM applications" in sql for sql in conn.statements())

    @pytest.mark.asyncio
    async def test_payment_credit_then_recompute(self):
        conn = FakeConnection([
            {"total": 0, "average": 0},
            {"job_completion_rate": 0, "complaint_count": 0, "successful_payments": 1},
            {"role": "worker"},
            {"completed": 0, "engaged": 0},
        ])

        result = await record_successful_payment(conn, "w1")

        assert "successful_payments = trust_scores.successful_payments + 1" in conn.statements()[0]
        assert result["score"] == 52
