"""
Notification endpoints and the WebSocket channel
"""

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from .auth import BankingSystem, get_banking_system, get_current_user
from .schemas import NotificationRequest
from ..users import User


router = APIRouter()
ws_router = APIRouter()


@router.post("/send")
async def send_notification(
    request: NotificationRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Broadcast a message to every connected client"""
    delivered = await system.notifications.broadcast(
        request.message, data={"from": user.username}
    )
    return {"message": "Notification sent", "delivered": delivered}


@ws_router.websocket("/ws")
async def notifications_socket(websocket: WebSocket):
    hub = websocket.app.state.banking_system.notifications
    await websocket.accept()
    await hub.connect(websocket)
    try:
        while True:
            text = await websocket.receive_text()
            await hub.echo(websocket, text)
    except WebSocketDisconnect:
        hub.logger.debug("Client closed the socket")
    finally:
        await hub.disconnect(websocket)
