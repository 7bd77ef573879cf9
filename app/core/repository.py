"""
Storage access for the `users` and `leaves` tables.

Two backends share one interface:
- SupabaseRepository talks to PostgREST through supabase-py.
- MemoryRepository keeps rows in process, for local runs and tests.

Leave reads come back hydrated: `student` and `faculty` hold user summaries.
"""

import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

USER_SUMMARY_FIELDS = ("id", "name", "email", "department", "student_id")

LEAVE_SELECT = (
    "*, "
    "student:users!leaves_student_id_fkey(id, name, email, department, student_id), "
    "faculty:users!leaves_faculty_id_fkey(id, name, email, department, student_id)"
)


def _parse_ts(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if not value:
        return datetime.min.replace(tzinfo=timezone.utc)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _is_uuid(value) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


class LeaveRepository(ABC):
    # ---- users ----
    @abstractmethod
    def get_user(self, user_id: str) -> Optional[dict]: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[dict]: ...

    @abstractmethod
    def get_user_by_firebase_uid(self, uid: str) -> Optional[dict]: ...

    @abstractmethod
    def list_users(self) -> list[dict]: ...

    @abstractmethod
    def insert_user(self, data: dict) -> dict: ...

    @abstractmethod
    def list_faculty(self, department: str) -> list[dict]:
        """Active faculty of a department, oldest account first (created_at, id)."""

    @abstractmethod
    def count_users(self, role: Optional[str] = None) -> int: ...

    # ---- leaves ----
    @abstractmethod
    def insert_leave(self, data: dict) -> dict: ...

    @abstractmethod
    def get_leave(self, leave_id: str) -> Optional[dict]: ...

    @abstractmethod
    def update_leave(self, leave_id: str, expected_version: int, changes: dict) -> Optional[dict]:
        """Apply `changes` only if the stored version still equals `expected_version`.

        Returns the hydrated row, or None when the version no longer matches.
        """

    @abstractmethod
    def list_leaves(
        self,
        student_id: Optional[str] = None,
        faculty_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        """Hydrated leaves, newest first."""

    @abstractmethod
    def count_leaves(self, status: Optional[str] = None, faculty_id: Optional[str] = None) -> int: ...


class SupabaseRepository(LeaveRepository):
    def __init__(self, client):
        self.db = client

    @staticmethod
    def _count(result) -> int:
        count = getattr(result, "count", None)
        if count is None:
            return len(result.data or [])
        return count

    def _single(self, table: str, column: str, value) -> Optional[dict]:
        result = self.db.table(table).select("*").eq(column, value).limit(1).execute()
        return result.data[0] if result.data else None

    def get_user(self, user_id):
        return self._single("users", "id", user_id)

    def get_user_by_email(self, email):
        return self._single("users", "email", email)

    def get_user_by_firebase_uid(self, uid):
        return self._single("users", "firebase_uid", uid)

    def list_users(self):
        result = self.db.table("users").select("*").order("role").order("name").execute()
        return result.data

    def insert_user(self, data):
        result = self.db.table("users").insert(data).execute()
        return result.data[0]

    def list_faculty(self, department):
        result = (
            self.db.table("users")
            .select("*")
            .eq("role", "faculty")
            .eq("department", department)
            .eq("is_active", True)
            .order("created_at")
            .order("id")
            .execute()
        )
        return result.data

    def count_users(self, role=None):
        query = self.db.table("users").select("id", count="exact")
        if role:
            query = query.eq("role", role)
        return self._count(query.execute())

    def insert_leave(self, data):
        result = self.db.table("leaves").insert(data).execute()
        return self.get_leave(result.data[0]["id"])

    def get_leave(self, leave_id):
        # leaves.id is a uuid column; PostgREST rejects anything else with 22P02
        if not _is_uuid(leave_id):
            return None
        result = self.db.table("leaves").select(LEAVE_SELECT).eq("id", leave_id).limit(1).execute()
        return result.data[0] if result.data else None

    def update_leave(self, leave_id, expected_version, changes):
        if not _is_uuid(leave_id):
            return None
        result = (
            self.db.table("leaves")
            .update(changes)
            .eq("id", leave_id)
            .eq("version", expected_version)
            .execute()
        )
        if not result.data:
            return None
        return self.get_leave(leave_id)

    def list_leaves(self, student_id=None, faculty_id=None, status=None, limit=None):
        query = self.db.table("leaves").select(LEAVE_SELECT)
        if student_id:
            query = query.eq("student_id", student_id)
        if faculty_id:
            query = query.eq("faculty_id", faculty_id)
        if status:
            query = query.eq("status", status)
        query = query.order("created_at", desc=True)
        if limit:
            query = query.limit(limit)
        return query.execute().data

    def count_leaves(self, status=None, faculty_id=None):
        query = self.db.table("leaves").select("id", count="exact")
        if status:
            query = query.eq("status", status)
        if faculty_id:
            query = query.eq("faculty_id", faculty_id)
        return self._count(query.execute())


class MemoryRepository(LeaveRepository):
    def __init__(self):
        self._users: dict[str, dict] = {}
        self._leaves: dict[str, dict] = {}
        self._seq: dict[str, int] = {}
        self._lock = threading.Lock()

    def _next_seq(self) -> int:
        return len(self._seq) + 1

    def _summary(self, user_id: str) -> Optional[dict]:
        user = self._users.get(user_id)
        if user is None:
            return None
        return {field: user.get(field) for field in USER_SUMMARY_FIELDS}

    def _hydrate(self, row: dict) -> dict:
        hydrated = dict(row)
        hydrated["student"] = self._summary(row["student_id"])
        hydrated["faculty"] = self._summary(row["faculty_id"])
        return hydrated

    def _created_key(self, row: dict):
        return (_parse_ts(row.get("created_at")), self._seq.get(row["id"], 0))

    def get_user(self, user_id):
        user = self._users.get(user_id)
        return dict(user) if user else None

    def get_user_by_email(self, email):
        for user in self._users.values():
            if user.get("email") == email:
                return dict(user)
        return None

    def get_user_by_firebase_uid(self, uid):
        for user in self._users.values():
            if user.get("firebase_uid") == uid:
                return dict(user)
        return None

    def list_users(self):
        users = sorted(self._users.values(), key=lambda u: (u.get("role", ""), u.get("name", "")))
        return [dict(u) for u in users]

    def insert_user(self, data):
        with self._lock:
            row = dict(data)
            row.setdefault("id", str(uuid.uuid4()))
            row.setdefault("is_active", True)
            row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
            self._users[row["id"]] = row
            self._seq[row["id"]] = self._next_seq()
            return dict(row)

    def list_faculty(self, department):
        faculty = [
            u for u in self._users.values()
            if u.get("role") == "faculty"
            and u.get("department") == department
            and u.get("is_active", True)
        ]
        faculty.sort(key=lambda u: (_parse_ts(u.get("created_at")), u["id"]))
        return [dict(u) for u in faculty]

    def count_users(self, role=None):
        return sum(1 for u in self._users.values() if role is None or u.get("role") == role)

    def insert_leave(self, data):
        with self._lock:
            row = dict(data)
            row.setdefault("id", str(uuid.uuid4()))
            self._leaves[row["id"]] = row
            self._seq[row["id"]] = self._next_seq()
        return self._hydrate(row)

    def get_leave(self, leave_id):
        row = self._leaves.get(leave_id)
        return self._hydrate(row) if row else None

    def update_leave(self, leave_id, expected_version, changes):
        with self._lock:
            row = self._leaves.get(leave_id)
            if row is None or row.get("version") != expected_version:
                return None
            row.update(changes)
            return self._hydrate(row)

    def list_leaves(self, student_id=None, faculty_id=None, status=None, limit=None):
        rows = [
            r for r in self._leaves.values()
            if (student_id is None or r["student_id"] == student_id)
            and (faculty_id is None or r["faculty_id"] == faculty_id)
            and (status is None or r["status"] == status)
        ]
        rows.sort(key=self._created_key, reverse=True)
        if limit:
            rows = rows[:limit]
        return [self._hydrate(r) for r in rows]

    def count_leaves(self, status=None, faculty_id=None):
        return len(self.list_leaves(faculty_id=faculty_id, status=status))
