# profile_completion.py
# How much of a worker or employer profile is filled in, as a 0-100 percentage.

WORKER_WEIGHTS = {"skills": 25, "categories": 25, "availability": 20, "experience": 20, "location": 10}
EMPLOYER_WEIGHTS = {"business_name": 30, "location": 25, "business_type": 20, "description": 25}


def _filled(value) -> bool:
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return isinstance(value, str) and value.strip() != ""


def profile_completion(profile: dict | None, role: str) -> int:
    weights = WORKER_WEIGHTS if role == "worker" else EMPLOYER_WEIGHTS
    if not profile:
        return 0
    return sum(weight for field, weight in weights.items() if _filled(profile.get(field)))


def missing_fields(profile: dict | None, role: str) -> list[str]:
    weights = WORKER_WEIGHTS if role == "worker" else EMPLOYER_WEIGHTS
    profile = profile or {}
    return [field for field in weights if not _filled(profile.get(field))]
