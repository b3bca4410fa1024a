from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..services.broadcast_hub import BroadcastHub


router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def ws_board(websocket: WebSocket):
    # Read-only channel: pushes update_<kind> events, no authentication
    hub: BroadcastHub = websocket.app.state.hub
    await hub.connect(websocket)
    try:
        while True:
            data = await websocket.receive_text()
            # Accept keep-alives or simple pings; ignore anything else
            if data and data.strip().lower() in {"ping", "keepalive"}:
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        await hub.disconnect(websocket)
    except Exception:
        await hub.disconnect(websocket)
        try:
            await websocket.close()
        except Exception:
            pass
