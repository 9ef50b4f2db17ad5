"""Read-only course and user lookups used by the purchase flow."""
from typing import Optional

from coursepay.models import Course, User


def fetch_course_by_id(db, course_id: str) -> Optional[Course]:
    return db.get(Course, course_id)


def get_user_email_by_id(db, user_id: str) -> Optional[str]:
    user = db.get(User, user_id)
    if not user or not user.email:
        return None
    return user.email
