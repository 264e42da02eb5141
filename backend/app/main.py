from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from backend.app.sessions import Session, SessionRegistry
from builder.graph import Graph
from builder.synthesis import simplified, synthesize_detailed
from tutor.equations import (
    get_all_equations,
    get_equation_by_id,
    get_equations_by_difficulty,
)

app = FastAPI(title="Equation Builder API")
app.state.sessions = SessionRegistry()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class SessionRequest(BaseModel):
    equation_id: str


class TickRequest(BaseModel):
    elapsed_ms: int = Field(ge=0)


class StepInfo(BaseModel):
    step: int
    equation: str
    action: str
    explanation: str
    value: Optional[Any] = None


class StatsInfo(BaseModel):
    equation_id: str
    current_step: int
    total_steps: int
    progress: float
    hints_used: int
    time_spent_ms: int
    state: str


class SessionResponse(BaseModel):
    session_id: str
    state: str
    stats: Optional[StatsInfo] = None
    current_step: Optional[StepInfo] = None
    hint: Optional[dict] = None
    messages: list[dict] = []


class GraphRequest(BaseModel):
    nodes: list[dict] = []
    connections: list[dict] = []
    constraints: list[dict] = []
    sink_id: Optional[str] = None


class SynthesisResponse(BaseModel):
    expression: str
    complete: bool
    degraded_nodes: list[str]
    simplified: Optional[str] = None


def _sessions() -> SessionRegistry:
    return app.state.sessions


def _get_session(session_id: str) -> Session:
    session = _sessions().get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found.")
    return session


def _session_payload(session: Session, hint=None) -> dict:
    engine = session.engine
    stats = engine.get_sequence_stats()
    step = engine.current_step
    return {
        "session_id": session.id,
        "state": engine.state.value,
        "stats": stats.to_dict() if stats else None,
        "current_step": step.to_record() if step else None,
        "hint": vars(hint) if hint else None,
        "messages": session.drain_messages(),
    }


# ── Catalog ─────────────────────────────────────────────────────────────

@app.get("/api/equations")
def list_equations(difficulty: Optional[str] = None, topic: Optional[str] = None):
    try:
        equations = (get_equations_by_difficulty(difficulty) if difficulty
                     else get_all_equations())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown difficulty: {difficulty}")
    if topic:
        equations = [eq for eq in equations if eq.topic == topic]
    return [eq.summary() for eq in equations]


@app.get("/api/equations/{equation_id}")
def get_equation(equation_id: str):
    definition = get_equation_by_id(equation_id)
    if definition is None:
        raise HTTPException(status_code=404, detail="Equation not found.")
    return definition.to_record()


# ── Sessions ────────────────────────────────────────────────────────────

@app.post("/api/sessions", response_model=SessionResponse)
def create_session(req: SessionRequest):
    try:
        session = _sessions().create(req.equation_id.strip())
    except KeyError:
        raise HTTPException(status_code=404, detail="Equation not found.")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _session_payload(session)


@app.get("/api/sessions/{session_id}", response_model=SessionResponse)
def get_session(session_id: str):
    return _session_payload(_get_session(session_id))


@app.post("/api/sessions/{session_id}/advance", response_model=SessionResponse)
def advance(session_id: str):
    session = _get_session(session_id)
    session.engine.advance_step()
    return _session_payload(session)


@app.post("/api/sessions/{session_id}/hint", response_model=SessionResponse)
def hint(session_id: str):
    session = _get_session(session_id)
    return _session_payload(session, session.engine.request_hint())


@app.post("/api/sessions/{session_id}/reset", response_model=SessionResponse)
def reset(session_id: str):
    session = _get_session(session_id)
    session.engine.reset_sequence()
    return _session_payload(session)


@app.post("/api/sessions/{session_id}/tick", response_model=SessionResponse)
def tick(session_id: str, req: TickRequest):
    session = _get_session(session_id)
    session.engine.tick(req.elapsed_ms)
    return _session_payload(session)


@app.delete("/api/sessions/{session_id}")
def close_session(session_id: str):
    if not _sessions().close(session_id):
        raise HTTPException(status_code=404, detail="Session not found.")
    return {"closed": session_id}


# ── Graph synthesis ─────────────────────────────────────────────────────

@app.post("/api/graph/synthesize", response_model=SynthesisResponse)
def synthesize_graph(req: GraphRequest):
    try:
        graph = Graph.from_dict({"nodes": req.nodes, "connections": req.connections,
                                 "constraints": req.constraints})
        result = synthesize_detailed(graph, req.sink_id)
    except KeyError as e:
        raise HTTPException(status_code=400, detail=f"Missing field: {e}")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    simple = None
    if result.complete:
        try:
            simple = simplified(graph, req.sink_id)
        except ValueError:
            simple = None
    return {
        "expression": result.expression,
        "complete": result.complete,
        "degraded_nodes": list(result.degraded_nodes),
        "simplified": simple,
    }
