"""Application CRUD over the document store."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any

from jobtrack.db import Database
from jobtrack.models import Application, ApplicationStage, parse_stage

_FIELD_NAMES = {
    "company_name": "companyName",
    "role": "role",
    "stage": "stage",
    "application_date": "applicationDate",
    "job_link": "jobLink",
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ApplicationService:
    """Stores applications under ``users/<uid>/applications``."""

    def __init__(self, db: Database, clock: Callable[[], datetime] = _utc_now) -> None:
        self._db = db
        self._clock = clock

    def list(self, user_id: str) -> list[Application]:
        """All applications, newest created first."""

        docs = self._db.list(_collection(user_id), order_by="createdAt", descending=True)
        return [self._from_doc(doc_id, data) for doc_id, data in docs]

    def get(self, user_id: str, application_id: str) -> Application | None:
        data = self._db.get(f"{_collection(user_id)}/{application_id}")
        return self._from_doc(application_id, data) if data is not None else None

    def add(
        self,
        user_id: str,
        company_name: str,
        role: str,
        stage: ApplicationStage | str = ApplicationStage.APPLIED,
        application_date: datetime | None = None,
        job_link: str = "",
    ) -> str:
        company_name = company_name.strip()
        role = role.strip()
        if not company_name or not role:
            raise ValueError("Company name and role are required")
        now = self._clock()
        return self._db.add(
            _collection(user_id),
            {
                "companyName": company_name,
                "role": role,
                "stage": parse_stage(stage).value,
                "applicationDate": application_date or now,
                "jobLink": job_link,
                "createdAt": now,
                "updatedAt": now,
            },
        )

    def update(self, user_id: str, application_id: str, **fields: Any) -> None:
        """Patch application fields; raises DocumentNotFoundError if it does not exist."""

        unknown = set(fields) - set(_FIELD_NAMES)
        if unknown:
            raise ValueError(f"Unknown application fields: {sorted(unknown)}")
        patch: dict[str, Any] = {}
        for name, value in fields.items():
            if name == "stage":
                value = parse_stage(value).value
            patch[_FIELD_NAMES[name]] = value
        patch["updatedAt"] = self._clock()
        self._db.update(f"{_collection(user_id)}/{application_id}", patch)

    def update_stage(self, user_id: str, application_id: str, stage: ApplicationStage | str) -> None:
        self._db.update(
            f"{_collection(user_id)}/{application_id}",
            {"stage": parse_stage(stage).value, "updatedAt": self._clock()},
        )

    def delete(self, user_id: str, application_id: str) -> None:
        """Delete an application together with its notes and cached summary."""

        self._db.delete(f"{_collection(user_id)}/{application_id}", recursive=True)

    def _from_doc(self, doc_id: str, data: dict[str, Any]) -> Application:
        return Application(
            id=doc_id,
            company_name=data.get("companyName", ""),
            role=data.get("role", ""),
            stage=parse_stage(data.get("stage", ApplicationStage.APPLIED.value)),
            application_date=data.get("applicationDate") or self._clock(),
            created_at=data.get("createdAt") or self._clock(),
            updated_at=data.get("updatedAt") or self._clock(),
            job_link=data.get("jobLink") or "",
        )


def filter_applications(
    applications: Iterable[Application],
    search: str = "",
    stage: ApplicationStage | str = "all",
) -> list[Application]:
    """Case-insensitive company/role search combined with an optional stage filter."""

    query = search.strip().lower()
    wanted = None if stage == "all" else parse_stage(stage)
    return [
        app
        for app in applications
        if (query in app.company_name.lower() or query in app.role.lower())
        and (wanted is None or app.stage is wanted)
    ]


def _collection(user_id: str) -> str:
    return f"users/{user_id}/applications"
