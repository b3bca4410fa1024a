"""
Board resource services.

All five board kinds share one parameterized service: table, writable fields,
list ordering and an optional extra validation hook. Editable kinds add full
replace and delete on top of it; alerts add soft delete (dismiss / clear all)
instead and have no update or delete at all.

Every successful mutation is followed by exactly one broadcast of the kind's
full current list.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

import structlog
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import update as sa_update
from sqlalchemy.orm import sessionmaker

from ..config import Settings
from ..errors import ValidationError, NotFoundError, ConflictError
from ..models.models import Absence, DownedEquipment, OnCallStaff, Notice, EmergencyAlert
from ..schemas.resources import (
    RecordFields,
    AbsenceFields,
    EquipmentFields,
    OnCallFields,
    NoticeFields,
    AlertFields,
)
from ..auth.identity import ActorIdentity
from .broadcast_hub import BroadcastCoordinator
from .storage import run_storage
from .time_rules import as_iso, today_local, utc_now

logger = structlog.get_logger(__name__)


def _check_equipment_status(cfg: Settings, values: Dict[str, Any]) -> None:
    allowed = cfg.equipment_status_list
    if values.get("status") not in allowed:
        raise ValidationError(f"status: must be one of {', '.join(allowed)}")


@dataclass(frozen=True)
class ResourceKind:
    name: str  # URL segment and broadcast suffix
    label: str
    model: type
    schema: Type[RecordFields]
    order_by: Tuple[Any, ...]
    date_field: Optional[str] = None
    extra_check: Optional[Callable[[Settings, Dict[str, Any]], None]] = None
    soft_delete: bool = False


ABSENCES = ResourceKind(
    name="absences",
    label="Absence",
    model=Absence,
    schema=AbsenceFields,
    order_by=(Absence.absence_date.desc(), Absence.id.desc()),
    date_field="absence_date",
)
EQUIPMENT = ResourceKind(
    name="equipment",
    label="Equipment",
    model=DownedEquipment,
    schema=EquipmentFields,
    order_by=(DownedEquipment.id.desc(),),
    extra_check=_check_equipment_status,
)
ONCALL = ResourceKind(
    name="oncall",
    label="On-call entry",
    model=OnCallStaff,
    schema=OnCallFields,
    order_by=(OnCallStaff.id.asc(),),
)
NOTICES = ResourceKind(
    name="notices",
    label="Notice",
    model=Notice,
    schema=NoticeFields,
    order_by=(Notice.notice_date.desc(), Notice.id.desc()),
    date_field="notice_date",
)
ALERTS = ResourceKind(
    name="alerts",
    label="Alert",
    model=EmergencyAlert,
    schema=AlertFields,
    order_by=(EmergencyAlert.id.desc(),),
    soft_delete=True,
)

KINDS: Dict[str, ResourceKind] = {k.name: k for k in (ABSENCES, EQUIPMENT, ONCALL, NOTICES, ALERTS)}


def serialize(row: Any) -> dict:
    return {c.name: as_iso(getattr(row, c.name)) for c in row.__table__.columns}


def _describe(e: PydanticValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


def _stamp(prefix: str, actor: ActorIdentity) -> Dict[str, str]:
    return {f"{prefix}_email": actor.email, f"{prefix}_name": actor.name}


class BoardService:
    """Read and create, shared by every kind."""

    def __init__(
        self,
        kind: ResourceKind,
        session_factory: sessionmaker,
        cfg: Settings,
        coordinator: Optional[BroadcastCoordinator] = None,
    ) -> None:
        self.kind = kind
        self._session_factory = session_factory
        self.cfg = cfg
        self._coordinator = coordinator
        if coordinator is not None:
            coordinator.register(kind.name, self.list)

    async def _run(self, func, *args):
        return await run_storage(func, *args, timeout=self.cfg.storage_timeout_seconds, op=f"{self.kind.name}.{func.__name__.lstrip('_')}")

    async def _broadcast(self) -> None:
        if self._coordinator is not None:
            await self._coordinator.notify(self.kind.name)

    def validate(self, fields: Optional[dict]) -> Tuple[Dict[str, Any], Optional[int]]:
        """Parse a full record body. Returns (column values, expected version)."""
        try:
            parsed = self.kind.schema.model_validate(fields or {})
        except PydanticValidationError as e:
            raise ValidationError(_describe(e))
        values = parsed.model_dump(exclude={"version"})
        if self.kind.date_field and values.get(self.kind.date_field) is None:
            values[self.kind.date_field] = today_local(self.cfg.tz_default)
        if self.kind.extra_check is not None:
            self.kind.extra_check(self.cfg, values)
        return values, parsed.version

    # ---- reads ----

    def _list(self) -> List[dict]:
        model = self.kind.model
        with self._session_factory() as db:
            q = db.query(model)
            if self.kind.soft_delete:
                q = q.filter(model.active.is_(True))
            return [serialize(r) for r in q.order_by(*self.kind.order_by).all()]

    async def list(self) -> List[dict]:
        return await self._run(self._list)

    # ---- writes ----

    def _create(self, values: Dict[str, Any], actor: ActorIdentity) -> int:
        model = self.kind.model
        with self._session_factory() as db:
            row = model(**values, **_stamp("created_by", actor), **_stamp("updated_by", actor))
            if self.kind.soft_delete:
                row.active = True
            db.add(row)
            db.commit()
            return row.id

    async def create(self, fields: Optional[dict], actor: Optional[ActorIdentity] = None) -> int:
        values, _ = self.validate(fields)
        record_id = await self._run(self._create, values, actor or ActorIdentity.unknown())
        logger.info("record_created", kind=self.kind.name, id=record_id)
        await self._broadcast()
        return record_id


class ResourceService(BoardService):
    """Full-record replace and hard delete for the editable kinds."""

    def _update(self, record_id: int, values: Dict[str, Any], expected_version: Optional[int], actor: ActorIdentity) -> None:
        model = self.kind.model
        with self._session_factory() as db:
            stmt = sa_update(model).where(model.id == record_id)
            if expected_version is not None:
                stmt = stmt.where(model.version == expected_version)
            stmt = stmt.values(
                **values,
                **_stamp("updated_by", actor),
                updated_at=utc_now(),
                version=model.version + 1,
            )
            result = db.execute(stmt.execution_options(synchronize_session=False))
            if result.rowcount == 0:
                exists = db.query(model.id).filter(model.id == record_id).first() is not None
                db.rollback()
                if not exists:
                    raise NotFoundError(f"{self.kind.label} {record_id} not found")
                raise ConflictError(f"{self.kind.label} {record_id} was modified by someone else; reload and retry")
            db.commit()

    async def update(self, record_id: int, fields: Optional[dict], actor: Optional[ActorIdentity] = None) -> None:
        """Full-record replace. ``version`` in the body turns on the conflict check."""
        values, expected_version = self.validate(fields)
        await self._run(self._update, record_id, values, expected_version, actor or ActorIdentity.unknown())
        logger.info("record_updated", kind=self.kind.name, id=record_id)
        await self._broadcast()

    def _delete(self, record_id: int) -> int:
        model = self.kind.model
        with self._session_factory() as db:
            count = db.query(model).filter(model.id == record_id).delete(synchronize_session=False)
            db.commit()
            return count

    async def delete(self, record_id: int) -> None:
        # Missing ids are a silent no-op
        count = await self._run(self._delete, record_id)
        logger.info("record_deleted", kind=self.kind.name, id=record_id, rows=count)
        await self._broadcast()


class AlertService(BoardService):
    """Alerts are never updated or physically deleted, only deactivated."""

    def _history(self) -> List[dict]:
        model = self.kind.model
        with self._session_factory() as db:
            return [serialize(r) for r in db.query(model).order_by(*self.kind.order_by).all()]

    async def history(self) -> List[dict]:
        return await self._run(self._history)

    def _dismiss(self, record_id: int, actor: ActorIdentity) -> bool:
        model = self.kind.model
        with self._session_factory() as db:
            result = db.execute(
                sa_update(model)
                .where(model.id == record_id, model.active.is_(True))
                .values(active=False, updated_at=utc_now(), version=model.version + 1, **_stamp("updated_by", actor))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                exists = db.query(model.id).filter(model.id == record_id).first() is not None
                db.rollback()
                if not exists:
                    raise NotFoundError(f"{self.kind.label} {record_id} not found")
                return False
            db.commit()
            return True

    async def dismiss(self, record_id: int, actor: Optional[ActorIdentity] = None) -> bool:
        """Deactivate one alert. Already-dismissed alerts are left as they are."""
        changed = await self._run(self._dismiss, record_id, actor or ActorIdentity.unknown())
        logger.info("alert_dismissed", id=record_id, changed=changed)
        await self._broadcast()
        return changed

    def _clear_all(self, actor: ActorIdentity) -> int:
        model = self.kind.model
        with self._session_factory() as db:
            result = db.execute(
                sa_update(model)
                .where(model.active.is_(True))
                .values(active=False, updated_at=utc_now(), version=model.version + 1, **_stamp("updated_by", actor))
                .execution_options(synchronize_session=False)
            )
            db.commit()
            return result.rowcount

    async def clear_all(self, actor: Optional[ActorIdentity] = None) -> int:
        count = await self._run(self._clear_all, actor or ActorIdentity.unknown())
        logger.info("alerts_cleared", rows=count)
        await self._broadcast()
        return count


def build_services(cfg: Settings, session_factory: sessionmaker, coordinator: BroadcastCoordinator) -> Dict[str, BoardService]:
    services: Dict[str, BoardService] = {}
    for kind in KINDS.values():
        cls = AlertService if kind.soft_delete else ResourceService
        services[kind.name] = cls(kind, session_factory, cfg, coordinator)
    return services
