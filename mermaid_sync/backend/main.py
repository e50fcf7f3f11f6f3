"""
mermaid-sync Backend - FastAPI Application

This is the main entry point for the sync engine backend.
It provides:
- REST API for text changes and graph editing operations
- Stateless text <-> graph conversion endpoints
- WebSocket endpoint for real-time updates (and text changes from the text view)
- CORS configuration for local frontend development
"""
import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from ..core import (
    ConvertGraphRequest, ConvertTextRequest, CreateEdgeRequest, CreateNodeRequest,
    Dialect, NewDiagramRequest, NodeShape, TextChangeRequest, UpdateEdgeRequest, UpdateNodeRequest,
    parse, serialize, validate_graph, validation_summary,
)
from ..core.models import FLOWCHART_NODE_SHAPES, Position
from .autosave import AutoSaver
from .config import Settings, get_settings
from .diagram_manager import DiagramManager
from .scheduling import AsyncioScheduler, Scheduler
from .sync_controller import SyncController
from .websocket_manager import WebSocketManager

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


# --- Async change notification ---
# Bridge between sync controller callbacks and async WebSocket broadcasts

async def change_broadcaster(queue: asyncio.Queue, ws_manager: WebSocketManager):
    """Background task that broadcasts sync events to WebSocket clients."""
    while True:
        event = await queue.get()
        await ws_manager.publish(event)


def _wire_events(controller: SyncController, queue: asyncio.Queue, autosaver: Optional[AutoSaver]):
    def on_text_published(text: str):
        queue.put_nowait({"type": "text_published", "text": text, "revision": controller.revision})
        if autosaver:
            autosaver.schedule(text)

    def on_graph_replaced(_graph):
        queue.put_nowait({
            "type": "graph_replaced", "version": controller.version, "revision": controller.revision
        })
        if autosaver and controller.text:
            autosaver.schedule(controller.text)

    controller.on_text_published(on_text_published)
    controller.on_graph_replaced(on_graph_replaced)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup/shutdown tasks."""
    settings: Settings = app.state.settings
    configure_logging(settings.log_level)

    autosaver: Optional[AutoSaver] = app.state.autosaver
    if autosaver:
        saved = autosaver.load()
        if saved:
            dialect = Dialect.from_header(saved) or settings.default_dialect
            app.state.controller.reset(dialect, saved)
            logger.info("Loaded %s diagram from %s", Dialect.coerce(dialect).value, autosaver.path)

    broadcaster_task = asyncio.create_task(change_broadcaster(app.state.events, app.state.ws_manager))

    yield

    # Publish anything still coalescing, then write it out
    app.state.controller.flush()
    if autosaver:
        autosaver.flush()

    broadcaster_task.cancel()
    try:
        await broadcaster_task
    except asyncio.CancelledError:
        pass


# --- Dependencies ---

def get_manager(request: Request) -> DiagramManager:
    return request.app.state.manager


router = APIRouter(prefix="/api")


# --- Health Check ---

@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint."""
    return {"status": "ok", "connections": request.app.state.ws_manager.connection_count}


# --- Diagram State ---

@router.get("/diagram")
async def get_diagram(manager: DiagramManager = Depends(get_manager)):
    """Get the current text, graph and sync state."""
    return manager.get_state()


@router.put("/diagram/text")
async def change_text(request: TextChangeRequest, manager: DiagramManager = Depends(get_manager)):
    """Feed an external text change (typed in the text view) to the controller."""
    reparsed = manager.controller.external_text_changed(request.text)
    return {"success": True, "reparsed": reparsed, **manager.get_state()}


@router.post("/diagram/new")
async def new_diagram(request: NewDiagramRequest, manager: DiagramManager = Depends(get_manager)):
    """Start a new diagram, optionally switching dialect."""
    manager.controller.reset(request.dialect, request.text)
    return {"success": True, **manager.get_state()}


@router.get("/diagram/validate")
async def validate_current_diagram(manager: DiagramManager = Depends(get_manager)):
    """
    Validate the current graph for structural issues.

    Returns a list of issues (errors, warnings, info) and a summary.
    """
    issues = validate_graph(manager.graph)
    return {
        "success": True,
        "issues": [issue.to_dict() for issue in issues],
        "summary": validation_summary(issues)
    }


# --- Node Operations ---

@router.post("/nodes")
async def create_node(request: CreateNodeRequest, manager: DiagramManager = Depends(get_manager)):
    """Create a new node."""
    position = None
    if request.x is not None and request.y is not None:
        position = Position(x=request.x, y=request.y)
    try:
        node = manager.add_node(
            label=request.label,
            shape=request.shape,
            position=position,
            node_id=request.id,
        )
        return {"success": True, "node": node.model_dump(mode="json")}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/nodes/{node_id}")
async def get_node(node_id: str, manager: DiagramManager = Depends(get_manager)):
    """Get a specific node."""
    node = manager.get_node(node_id)
    if node:
        return {"success": True, "node": node.model_dump(mode="json")}
    raise HTTPException(status_code=404, detail="Node not found")


@router.patch("/nodes/{node_id}")
async def update_node(node_id: str, request: UpdateNodeRequest, manager: DiagramManager = Depends(get_manager)):
    """Relabel, reshape and/or move a node."""
    node = manager.get_node(node_id)
    if node is None:
        raise HTTPException(status_code=404, detail="Node not found")
    position = None
    if request.x is not None or request.y is not None:
        position = Position(
            x=request.x if request.x is not None else node.position.x,
            y=request.y if request.y is not None else node.position.y,
        )
    try:
        manager.update_node(node_id, label=request.label, shape=request.shape, position=position)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "node": node.model_dump(mode="json")}


@router.delete("/nodes/{node_id}")
async def delete_node(node_id: str, manager: DiagramManager = Depends(get_manager)):
    """Delete a node and its connected edges."""
    if manager.delete_node(node_id):
        return {"success": True}
    raise HTTPException(status_code=404, detail="Node not found")


# --- Edge Operations ---

@router.post("/edges")
async def create_edge(request: CreateEdgeRequest, manager: DiagramManager = Depends(get_manager)):
    """Connect two existing nodes."""
    try:
        edge = manager.connect(request.source, request.target, label=request.label)
        return {"success": True, "edge": edge.model_dump(mode="json")}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/edges/{edge_id}")
async def get_edge(edge_id: str, manager: DiagramManager = Depends(get_manager)):
    """Get a specific edge."""
    edge = manager.get_edge(edge_id)
    if edge:
        return {"success": True, "edge": edge.model_dump(mode="json")}
    raise HTTPException(status_code=404, detail="Edge not found")


@router.patch("/edges/{edge_id}")
async def update_edge(edge_id: str, request: UpdateEdgeRequest, manager: DiagramManager = Depends(get_manager)):
    """Relabel an edge. Sending an empty or null label clears it."""
    edge = manager.get_edge(edge_id)
    if edge is None:
        raise HTTPException(status_code=404, detail="Edge not found")
    if "label" in request.model_fields_set:
        try:
            manager.relabel_edge(edge_id, request.label)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "edge": edge.model_dump(mode="json")}


@router.delete("/edges/{edge_id}")
async def delete_edge(edge_id: str, manager: DiagramManager = Depends(get_manager)):
    """Delete an edge."""
    if manager.delete_edge(edge_id):
        return {"success": True}
    raise HTTPException(status_code=404, detail="Edge not found")


# --- Enums for Frontend ---

@router.get("/enums/shapes")
async def get_shapes(dialect: Dialect = Query(default=Dialect.FLOWCHART)):
    """Get the node shapes available in a dialect."""
    if dialect == Dialect.SEQUENCE:
        return {"shapes": [NodeShape.PARTICIPANT.value]}
    return {"shapes": [s.value for s in FLOWCHART_NODE_SHAPES]}


# --- Stateless Conversion ---

@router.post("/convert/to-graph")
async def convert_to_graph(request: ConvertTextRequest):
    """Parse text without touching the current diagram."""
    graph = parse(request.text, request.dialect)
    return {"success": True, "graph": graph.to_json_dict()}


@router.post("/convert/to-text")
async def convert_to_text(request: ConvertGraphRequest):
    """Serialize a graph without touching the current diagram."""
    dialect = request.dialect or request.graph.dialect
    return {"success": True, "text": serialize(request.graph, dialect), "dialect": dialect.value}


# --- WebSocket ---

async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time updates.

    Clients connect here to receive text_published / graph_replaced events.
    The text view may also send {"type": "text_changed", "text": ...}.
    """
    app = websocket.app
    ws_manager: WebSocketManager = app.state.ws_manager
    await ws_manager.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text('{"type": "pong"}')
                continue
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.debug("Ignoring non-JSON WebSocket message")
                continue
            if isinstance(message, dict) and message.get("type") == "text_changed":
                app.state.controller.external_text_changed(str(message.get("text", "")))
    except WebSocketDisconnect:
        await ws_manager.disconnect(websocket)
    except Exception:
        logger.exception("WebSocket handler failed")
        await ws_manager.disconnect(websocket)


# --- FastAPI App ---

def create_app(settings: Optional[Settings] = None, scheduler: Optional[Scheduler] = None) -> FastAPI:
    """
    Build the application with its own sync engine.

    Args:
        settings: Configuration (defaults to environment settings)
        scheduler: Timer source for debounces (defaults to the running event loop)
    """
    settings = settings or get_settings()
    scheduler = scheduler or AsyncioScheduler()

    app = FastAPI(
        title="mermaid-sync API",
        description="Bidirectional Mermaid text <-> graph synchronization engine",
        version="1.0.0",
        lifespan=lifespan
    )

    controller = SyncController(scheduler, dialect=settings.default_dialect, settle_delay=settings.settle_delay)
    autosaver = None
    if settings.autosave_path:
        autosaver = AutoSaver(scheduler, settings.autosave_path, delay=settings.autosave_delay)

    app.state.settings = settings
    app.state.controller = controller
    app.state.manager = DiagramManager(controller)
    app.state.autosaver = autosaver
    app.state.ws_manager = WebSocketManager()
    app.state.events = asyncio.Queue()
    _wire_events(controller, app.state.events, autosaver)

    # CORS for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    app.add_api_websocket_route("/ws", websocket_endpoint)
    return app


# --- Run with uvicorn ---

def run(settings: Optional[Settings] = None):
    import uvicorn
    settings = settings or get_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
