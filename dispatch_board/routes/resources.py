from typing import Dict

from fastapi import APIRouter, Body, Depends, Request, Response

from ..auth.identity import ActorIdentity
from ..auth.security import require_admin
from ..services.resources import ResourceKind, BoardService, ResourceService, AlertService, KINDS, ALERTS


def get_services(request: Request) -> Dict[str, BoardService]:
    return request.app.state.services


def build_resource_router(kind: ResourceKind) -> APIRouter:
    """list / create / full replace / delete for one board kind."""
    router = APIRouter(prefix=f"/api/{kind.name}", tags=[kind.name])

    def service_dep(request: Request) -> ResourceService:
        return get_services(request)[kind.name]

    @router.get("")
    async def list_records(service: ResourceService = Depends(service_dep)):
        return await service.list()

    @router.post("", status_code=201)
    async def create_record(
        payload: dict = Body(default={}),
        service: ResourceService = Depends(service_dep),
        actor: ActorIdentity = Depends(require_admin),
    ):
        await service.create(payload, actor)
        return Response(status_code=201)

    @router.put("/{record_id}")
    async def update_record(
        record_id: int,
        payload: dict = Body(default={}),
        service: ResourceService = Depends(service_dep),
        actor: ActorIdentity = Depends(require_admin),
    ):
        await service.update(record_id, payload, actor)
        return Response(status_code=200)

    @router.delete("/{record_id}")
    async def delete_record(
        record_id: int,
        service: ResourceService = Depends(service_dep),
        _: ActorIdentity = Depends(require_admin),
    ):
        await service.delete(record_id)
        return Response(status_code=200)

    return router


def build_alert_router() -> APIRouter:
    """Alerts: public list is active-only; dismiss and clear replace update/delete."""
    router = APIRouter(prefix=f"/api/{ALERTS.name}", tags=[ALERTS.name])

    def service_dep(request: Request) -> AlertService:
        return get_services(request)[ALERTS.name]

    @router.get("")
    async def list_active_alerts(service: AlertService = Depends(service_dep)):
        return await service.list()

    @router.get("/history")
    async def alert_history(service: AlertService = Depends(service_dep), _: ActorIdentity = Depends(require_admin)):
        return await service.history()

    @router.post("", status_code=201)
    async def create_alert(
        payload: dict = Body(default={}),
        service: AlertService = Depends(service_dep),
        actor: ActorIdentity = Depends(require_admin),
    ):
        await service.create(payload, actor)
        return Response(status_code=201)

    @router.put("/{record_id}/dismiss")
    async def dismiss_alert(
        record_id: int,
        service: AlertService = Depends(service_dep),
        actor: ActorIdentity = Depends(require_admin),
    ):
        await service.dismiss(record_id, actor)
        return Response(status_code=200)

    @router.post("/clear")
    async def clear_alerts(service: AlertService = Depends(service_dep), actor: ActorIdentity = Depends(require_admin)):
        await service.clear_all(actor)
        return Response(status_code=200)

    return router


def build_routers() -> list:
    routers = [build_resource_router(k) for k in KINDS.values() if not k.soft_delete]
    routers.append(build_alert_router())
    return routers
