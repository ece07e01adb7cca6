"""
Tests for profile completion percentages
"""
from profile_completion import missing_fields, profile_completion


class TestProfileCompletion:

    def test_complete_worker(self):
        profile = {
            "skills": ["plumbing"], "categories": ["home"], "availability": "weekdays",
            "experience": "3 years", "location": "Pune",
        }
        assert profile_completion(profile, "worker") == 100
        assert missing_fields(profile, "worker") == []

    def test_partial_worker(self):
        profile = {"skills": ["plumbing"], "categories": [], "availability": " ", "location": "Pune"}
        assert profile_completion(profile, "worker") == 35
        assert missing_fields(profile, "worker") == ["categories", "availability", "experience"]

    def test_employer_weights(self):
        assert profile_completion({"business_name": "Acme", "description": "Shop"}, "employer") == 55

    def test_no_profile_row(self):
        assert profile_completion(None, "employer") == 0
