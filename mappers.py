"""
Row mappers: database rows (snake_case dicts from dict_row) to the camelCase
shapes the web and mobile clients consume.

UUIDs, datetimes and Decimals are left as-is; FastAPI's JSON encoder takes
care of them.
"""


def _num(value, default=0.0) -> float:
    return float(value) if value is not None else default


def map_user(row: dict) -> dict:
    return {
        "id": row["id"],
        "fullName": row.get("full_name"),
        "email": row.get("email") or None,
        "phone": row.get("phone") or row.get("phone_number"),
        "phoneNumber": row.get("phone_number") or row.get("phone"),
        "role": row.get("role"),
        "createdAt": row.get("created_at"),
        "profileCompleted": bool(row.get("profile_completed")),
        "trustScore": int(row.get("trust_score") or 50),
        "trustLevel": row.get("trust_level") or "basic",
        "isVerified": bool(row.get("is_verified")),
        "companyName": row.get("company_name") or None,
        "companyDescription": row.get("company_description") or None,
        "skills": row.get("skills") or [],
    }


def map_job(row: dict) -> dict:
    pay = _num(row["pay"] if row.get("pay") is not None else row.get("pay_amount"))
    timing = row.get("timing") or row.get("duration") or "Flexible"
    return {
        "id": row["id"],
        "employerId": row.get("employer_id"),
        "title": row.get("title"),
        "description": row.get("description"),
        "jobType": row.get("job_type"),
        "category": row.get("category"),
        "requiredSkills": row.get("required_skills") or [],
        "location": row.get("location"),
        "latitude": row.get("latitude"),
        "longitude": row.get("longitude"),
        "pay": pay,
        "payAmount": _num(row.get("pay_amount"), pay),
        "payType": row.get("pay_type") or "hourly",
        "paymentStatus": row.get("payment_status") or "pending",
        "escrowAmount": _num(row["escrow_amount"]) if row.get("escrow_amount") is not None else None,
        "escrowRequired": bool(row.get("escrow_required")),
        "timing": timing,
        "duration": row.get("duration") or timing,
        "experienceRequired": row.get("experience_required") or "entry",
        "requirements": row.get("requirements") or [],
        "benefits": row.get("benefits") or [],
        "slots": row.get("slots") or 1,
        "startDate": row.get("start_date"),
        "status": row.get("status"),
        "createdAt": row.get("created_at"),
        "updatedAt": row.get("updated_at"),
        "applicationCount": int(row.get("application_count") or 0),
        "views": int(row.get("views") or 0),
    }


def map_application(row: dict) -> dict:
    return {
        "id": row["id"],
        "jobId": row.get("job_id"),
        "workerId": row.get("worker_id"),
        "status": row.get("status"),
        "matchScore": int(row.get("match_score") or 0),
        "coverMessage": row.get("cover_message") or None,
        "coverLetter": row.get("cover_letter") or row.get("cover_message") or None,
        "createdAt": row.get("created_at"),
        "updatedAt": row.get("updated_at"),
    }


def map_rating(row: dict) -> dict:
    return {
        "id": row["id"],
        "jobId": row.get("job_id"),
        "applicationId": row.get("application_id"),
        "fromUserId": row.get("from_user_id"),
        "toUserId": row.get("to_user_id"),
        "rating": row.get("rating"),
        "feedback": row.get("feedback"),
        "createdAt": row.get("created_at"),
    }


def map_trust_score(row: dict) -> dict:
    return {
        "userId": row.get("user_id"),
        "score": int(row.get("score") or 0),
        "level": row.get("level") or "basic",
        "averageRating": _num(row.get("average_rating")),
        "totalRatings": int(row.get("total_ratings") or 0),
        "jobCompletionRate": _num(row.get("job_completion_rate")),
        "complaintCount": int(row.get("complaint_count") or 0),
        "successfulPayments": int(row.get("successful_payments") or 0),
        "updatedAt": row.get("updated_at"),
    }


def map_report(row: dict) -> dict:
    return {
        "id": row["id"],
        "reporterId": row.get("reporter_id"),
        "reportedId": row.get("reported_id"),
        "reportedUserId": row.get("reported_user_id") or row.get("reported_id"),
        "reportedJobId": row.get("reported_job_id"),
        "type": row.get("type"),
        "reason": row.get("reason"),
        "description": row.get("description") or row.get("reason"),
        "status": row.get("status"),
        "resolution": row.get("resolution"),
        "createdAt": row.get("created_at"),
        "resolvedAt": row.get("resolved_at"),
    }


def map_escrow(row: dict) -> dict:
    return {
        "id": row["id"],
        "jobId": row.get("job_id"),
        "employerId": row.get("employer_id"),
        "workerId": row.get("worker_id"),
        "amount": _num(row.get("amount")),
        "commission": _num(row.get("commission")),
        "status": row.get("status"),
        "createdAt": row.get("created_at"),
        "releasedAt": row.get("released_at"),
        "refundedAt": row.get("refunded_at"),
    }


def map_message(row: dict) -> dict:
    message = {
        "id": row["id"],
        "conversationId": row.get("conversation_id"),
        "senderId": row.get("sender_id"),
        "message": row.get("message"),
        "createdAt": row.get("created_at"),
        "read": bool(row.get("read")),
    }
    if row.get("attachment_url"):
        message["attachment"] = {
            "url": row["attachment_url"],
            "name": row.get("attachment_name"),
            "type": row.get("attachment_type"),
            "size": row.get("attachment_size"),
        }
    return message


def map_conversation(row: dict) -> dict:
    participants = row.get("participants") or [p for p in (row.get("worker_id"), row.get("employer_id")) if p]
    last = row.get("last_message")
    return {
        "id": row["id"],
        "participants": participants,
        "jobId": row.get("job_id"),
        "applicationId": row.get("application_id"),
        "updatedAt": row.get("updated_at") or row.get("created_at"),
        "lastMessage": {
            "id": last.get("id"),
            "senderId": last.get("sender_id"),
            "message": last.get("message"),
            "createdAt": last.get("created_at"),
            "read": bool(last.get("read")),
        } if last else None,
    }


def map_notification(row: dict) -> dict:
    return {
        "id": row["id"],
        "userId": row.get("user_id"),
        "type": row.get("type"),
        "title": row.get("title"),
        "message": row.get("message"),
        "link": row.get("link"),
        "isRead": bool(row.get("is_read")),
        "createdAt": row.get("created_at"),
    }
