# /oracle_assistant/routers/chatbot_router.py

import asyncio
import contextlib
import logging
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from ..core.context import AppContext
from ..core.deps import get_context, get_current_user, get_db_service
from ..models import chatbot_model
from ..models.auth_model import AuthenticatedUser
from ..services import chatbot_service, render_service, session_service
from ..services.database_service import DatabaseService
from ..services.workspace import ChatWorkspace

logger = logging.getLogger(__name__)

router = APIRouter()

# --- REST ENDPOINTS FOR SESSION MANAGEMENT ---

@router.get(
    "/sessions",
    response_model=chatbot_model.SessionListResponse,
    summary="Get Chat History",
    description="Retrieves all of the user's chat sessions, newest first."
)
def get_chat_sessions(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: DatabaseService = Depends(get_db_service)
):
    sessions = session_service.list_sessions(db, current_user)
    return {"sessions": render_service.render_sessions(sessions)}


@router.post(
    "/sessions",
    response_model=chatbot_model.SessionListItem,
    status_code=status.HTTP_201_CREATED,
    summary="Create a New Chat Session",
    description="Starts an empty session titled 'New Chat' and returns the stored row."
)
def create_new_chat_session(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: DatabaseService = Depends(get_db_service)
):
    session = session_service.create_session(db, current_user)
    return render_service.render_session(session, active_session_id=session.id)


@router.get(
    "/sessions/{session_id}/messages",
    response_model=chatbot_model.SessionMessagesResponse,
    summary="Get a Session's Messages",
    description="Retrieves the messages of one session, oldest first, rendered for display."
)
def get_session_messages(
    session_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: DatabaseService = Depends(get_db_service)
):
    messages = chatbot_service.get_messages(db, current_user, session_id)
    return {"session_id": session_id, "messages": render_service.render_messages(messages)}


@router.post(
    "/sessions/{session_id}/messages",
    response_model=chatbot_model.SendMessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Ask the Assistant",
    description="Stores the question, asks the assistant, stores the reply, and returns both messages."
)
async def send_session_message(
    session_id: str,
    request: chatbot_model.SendMessageRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    context: AppContext = Depends(get_context),
    db: DatabaseService = Depends(get_db_service)
):
    result = await chatbot_service.send_message(db, context.assistant, current_user, session_id, request.text)
    return {
        "user_message": render_service.render_message(result.user_message),
        "assistant_message": render_service.render_message(result.assistant_message),
        "degraded": result.degraded,
    }


# --- REAL-TIME WEBSOCKET ENDPOINT ---

@router.websocket("/ws")
async def workspace_socket(websocket: WebSocket, token: Optional[str] = None):
    """
    Drives one `ChatWorkspace`. Client events and auth-state notifications
    share a single queue and are applied one at a time; every applied event
    is answered with a {"type": "state"} message.

    A question/answer turn runs as its own task so the queue keeps draining
    while the assistant works. Sends that arrive during a turn are dropped.
    """
    context: AppContext = websocket.app.state.context
    await websocket.accept()

    workspace = ChatWorkspace(context)
    events: asyncio.Queue = asyncio.Queue()
    loop = asyncio.get_running_loop()
    turn: Optional[asyncio.Task] = None

    # The gateway may notify from a worker thread; hop onto this loop.
    subscription = context.identity.on_auth_state_change(
        lambda event: loop.call_soon_threadsafe(events.put_nowait, ("auth", event))
    )

    async def publish():
        await websocket.send_json({"type": "state", "payload": workspace.snapshot().model_dump(mode="json")})

    async def read_client():
        while True:
            try:
                data = await websocket.receive_json()
            except WebSocketDisconnect:
                await events.put(("closed", None))
                return
            except ValueError:
                await events.put(("malformed", None))
                continue
            await events.put(("client", data))

    async def run_turn(event):
        await workspace.dispatch(event, publish)
        try:
            await publish()
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.info("Turn finished after the client left: %s", e)

    reader = asyncio.create_task(read_client())
    try:
        if token:
            workspace.restore(token)
        await publish()
        while True:
            source, item = await events.get()
            if source == "closed":
                break
            if source == "auth":
                if workspace.handle_auth_event(item):
                    await publish()
                continue
            if source == "malformed" or not isinstance(item, dict):
                workspace.error = "Malformed event; expected a JSON object with a 'type'."
            elif item.get("type") == "send_message":
                if turn is None or turn.done():
                    turn = asyncio.create_task(run_turn(item))
                    continue
                logger.info("Ignoring a send while a turn is in flight.")
            else:
                await workspace.dispatch(item, publish)
            await publish()
    except WebSocketDisconnect:
        logger.info("Client disconnected from workspace.")
    finally:
        subscription.unsubscribe()
        reader.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reader
        # Let an in-flight turn store its reply even though nobody is watching.
        if turn is not None:
            await turn
