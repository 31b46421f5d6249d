"""FastAPI main application."""

import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..config import WorldGenConfig, settings
from ..core.world_generator import world_summary
from ..simulation import ConflictOutcome, EventLog, Simulation
from ..utils.logging import configure_logging

configure_logging(settings.log_level)

logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="Realms API",
    description="Procedural kingdoms and territorial conflict simulation",
    version="0.1.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class JobRecord(BaseModel):
    """Background generation job."""

    job_id: str
    status: str = "pending"
    world_id: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None


class SessionRegistry:
    """In-memory sessions and generation jobs of this app instance."""

    def __init__(self, event_log_size: int = 500):
        self.event_log_size = event_log_size
        self.sessions: Dict[str, Simulation] = {}
        self.jobs: Dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    def add_job(self) -> JobRecord:
        job = JobRecord(job_id=str(uuid.uuid4()))
        with self._lock:
            self.jobs[job.job_id] = job
        return job

    def update_job(self, job_id: str, **changes: Any) -> JobRecord:
        with self._lock:
            job = self.jobs[job_id].model_copy(update=changes)
            self.jobs[job_id] = job
        return job

    def add_session(self, simulation: Simulation) -> str:
        world_id = str(uuid.uuid4())
        with self._lock:
            self.sessions[world_id] = simulation
        return world_id

    def remove_session(self, world_id: str) -> bool:
        """Drop a session and the jobs that produced it."""
        with self._lock:
            removed = self.sessions.pop(world_id, None) is not None
            for job_id in [j.job_id for j in self.jobs.values() if j.world_id == world_id]:
                del self.jobs[job_id]
        return removed

    def remove_job(self, job_id: str) -> bool:
        with self._lock:
            return self.jobs.pop(job_id, None) is not None


app.state.registry = SessionRegistry(settings.event_log_size)


# Request/Response models
class WorldGenerationRequest(BaseModel):
    """Request to generate a new world."""

    seed: Optional[int] = Field(None, description="Seed for reproducible generation")
    width: float = Field(1400, ge=100, description="Canvas width")
    height: float = Field(1100, ge=100, description="Canvas height")
    num_kingdoms: int = Field(5, ge=1, le=64, description="Number of kingdoms")
    num_points: int = Field(2500, ge=100, description="Number of cells")
    num_cities_per_kingdom: int = Field(3, ge=0, le=20, description="Cities per kingdom")


class JobResponse(BaseModel):
    """Response with job information."""

    job_id: str
    status: str
    message: str
    world_id: Optional[str] = None
    error_message: Optional[str] = None


class KingdomOutline(BaseModel):
    """Kingdom as drawn on the map."""

    id: int
    name: str
    color: str
    border_color: str
    destroyed: bool
    cell_count: int
    svg_path: str


class ConflictRequest(BaseModel):
    attacker_id: int
    defender_id: int
    contested_cell_ids: List[int] = Field(default_factory=list)


class ConquestRequest(BaseModel):
    """Attack a cell, given by id or by map coordinates."""

    attacker_id: int
    target_cell_id: Optional[int] = None
    x: Optional[float] = None
    y: Optional[float] = None


class BattleRoundRequest(BaseModel):
    random_factor: Optional[float] = Field(None, gt=0, description="Fixed factor instead of a random draw")


class ResolveRequest(BaseModel):
    outcome: ConflictOutcome


def _registry() -> SessionRegistry:
    return app.state.registry


def _session(world_id: str) -> Simulation:
    simulation = _registry().sessions.get(world_id)
    if simulation is None:
        raise HTTPException(status_code=404, detail="World not found")
    return simulation


def _job_response(job: JobRecord) -> JobResponse:
    return JobResponse(
        job_id=job.job_id,
        status=job.status,
        message=f"Job {job.status}",
        world_id=job.world_id,
        error_message=job.error_message,
    )


@app.on_event("startup")
async def startup_event():
    logger.info("Starting Realms API")


# API endpoints
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Realms API",
        "version": "0.1.0",
        "status": "running"
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "sessions": len(_registry().sessions)}


@app.post("/worlds/generate", response_model=JobResponse)
async def generate(request: WorldGenerationRequest, background_tasks: BackgroundTasks):
    """
    Start world generation job.

    Returns immediately with job ID. Use /jobs/{job_id} to check status.
    """
    if max(request.width, request.height) > settings.max_map_size:
        raise HTTPException(status_code=400, detail=f"Canvas larger than {settings.max_map_size}")
    if request.num_points > settings.max_points:
        raise HTTPException(status_code=400, detail=f"More than {settings.max_points} points")

    logger.info("World generation requested", request=request.model_dump())
    job = _registry().add_job()
    background_tasks.add_task(run_world_generation, job.job_id, request)
    return JobResponse(job_id=job.job_id, status=job.status, message="World generation job started")


@app.get("/jobs/{job_id}", response_model=JobResponse)
async def get_job_status(job_id: str):
    """Get status of a world generation job."""
    job = _registry().jobs.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return _job_response(job)


@app.get("/worlds")
async def list_worlds():
    return [
        {"world_id": world_id, "seed": simulation.world.seed, "kingdoms": len(simulation.world.active_kingdoms)}
        for world_id, simulation in _registry().sessions.items()
    ]


@app.get("/worlds/{world_id}")
async def get_world(world_id: str):
    """Compact world summary without geometry."""
    return world_summary(_session(world_id).world)


@app.delete("/worlds/{world_id}")
async def delete_world(world_id: str):
    """Close a session and free its world."""
    if not _registry().remove_session(world_id):
        raise HTTPException(status_code=404, detail="World not found")
    logger.info("Session closed", world_id=world_id)
    return {"deleted": world_id}


@app.delete("/jobs/{job_id}")
async def delete_job(job_id: str):
    if not _registry().remove_job(job_id):
        raise HTTPException(status_code=404, detail="Job not found")
    return {"deleted": job_id}


@app.get("/worlds/{world_id}/kingdoms",response_model=List[KingdomOutline])
async def get_kingdoms(world_id: str):
    world = _session(world_id).world
    return [
        KingdomOutline(
            id=kingdom.id,
            name=kingdom.name,
            color=kingdom.color,
            border_color=kingdom.border_color,
            destroyed=kingdom.destroyed,
            cell_count=len(kingdom.cell_ids),
            svg_path=kingdom.svg_path,
        )
        for kingdom in world.kingdoms
    ]


@app.get("/worlds/{world_id}/state")
async def get_state(world_id: str):
    return _session(world_id).state.model_dump(mode="json")


@app.get("/worlds/{world_id}/events")
async def get_events(world_id: str, limit: Optional[int] = None):
    return [event.model_dump(mode="json") for event in _session(world_id).events.recent(limit)]


@app.post("/worlds/{world_id}/season")
async def advance_season(world_id: str):
    return _session(world_id).advance_season().date.model_dump(mode="json")


@app.post("/worlds/{world_id}/tick")
async def tick(world_id: str):
    state = _session(world_id).tick()
    return {str(k): v.resources.model_dump() for k, v in state.kingdoms.items()}


@app.patch("/worlds/{world_id}/kingdoms/{kingdom_id}/state")
async def update_kingdom_state(world_id: str, kingdom_id: int, updates: Dict[str, Any]):
    simulation = _session(world_id)
    if kingdom_id not in simulation.state.kingdoms:
        raise HTTPException(status_code=404, detail="Kingdom not found")
    kingdom = simulation.update_kingdom_state(kingdom_id, updates)
    if kingdom is None:
        raise HTTPException(status_code=422, detail="Invalid kingdom update")
    return kingdom.model_dump(mode="json")


@app.patch("/worlds/{world_id}/locations/{location_id}")
async def update_location_state(world_id: str, location_id: str, updates: Dict[str, Any]):
    simulation = _session(world_id)
    if location_id not in simulation.state.locations:
        raise HTTPException(status_code=404, detail="Location not found")
    location = simulation.update_location_state(location_id, updates)
    if location is None:
        raise HTTPException(status_code=422, detail="Invalid location update")
    return location.model_dump(mode="json")


@app.get("/worlds/{world_id}/conflicts")
async def list_conflicts(world_id: str):
    return [conflict.model_dump(mode="json") for conflict in _session(world_id).state.active_conflicts]


@app.post("/worlds/{world_id}/conflicts")
async def start_conflict(world_id: str, request: ConflictRequest):
    conflict = _session(world_id).start_conflict(
        request.attacker_id, request.defender_id, request.contested_cell_ids
    )
    if conflict is None:
        raise HTTPException(status_code=404, detail="Kingdom not found")
    return conflict.model_dump(mode="json")


@app.post("/worlds/{world_id}/conquests")
async def plan_conquest(world_id: str, request: ConquestRequest):
    """Attack a cell and the defender's land around it."""
    simulation = _session(world_id)
    if request.target_cell_id is not None:
        conflict = simulation.plan_conquest(request.target_cell_id, request.attacker_id)
    elif request.x is not None and request.y is not None:
        conflict = simulation.plan_conquest_at(request.x, request.y, request.attacker_id)
    else:
        raise HTTPException(status_code=400, detail="Give target_cell_id or x and y")
    if conflict is None:
        raise HTTPException(status_code=404, detail="No enemy territory at target")
    return conflict.model_dump(mode="json")


@app.post("/worlds/{world_id}/conflicts/{conflict_id}/rounds")
async def resolve_battle_round(world_id: str, conflict_id: str, request: Optional[BattleRoundRequest] = None):
    random_factor = request.random_factor if request is not None else None
    result = _session(world_id).resolve_battle_round(conflict_id, random_factor=random_factor)
    if result is None:
        raise HTTPException(status_code=404, detail="No open conflict")
    return {
        "status": result.status.value,
        "attacker_losses": result.attacker_losses,
        "defender_losses": result.defender_losses,
    }


@app.post("/worlds/{world_id}/conflicts/{conflict_id}/resolve")
async def force_resolve(world_id: str, conflict_id: str, request: ResolveRequest):
    conflict = _session(world_id).force_resolve_conflict(conflict_id, request.outcome)
    if conflict is None:
        raise HTTPException(status_code=404, detail="Conflict not found")
    return conflict.model_dump(mode="json")


@app.post("/worlds/{world_id}/conflicts/{conflict_id}/apply")
async def apply_resolution(world_id: str, conflict_id: str):
    """Carry out the pending outcome of a resolved conflict."""
    report = _session(world_id).apply_conflict_resolution(conflict_id)
    if report is None:
        raise HTTPException(status_code=404, detail="No resolved conflict")
    return {
        "outcome": report.outcome.value if report.outcome else None,
        "winner_id": report.winner_id,
        "loser_id": report.loser_id,
        "moved_cell_ids": report.moved_cell_ids,
        "captured_settlement_ids": report.captured_settlement_ids,
        "promoted_capital_id": report.promoted_capital_id,
        "destroyed": report.destroyed,
        "ruin_id": report.ruin_id,
    }


@app.delete("/worlds/{world_id}/conflicts/{conflict_id}")
async def clear_conflict(world_id: str, conflict_id: str):
    _session(world_id).clear_conflict(conflict_id)
    return {"cleared": conflict_id}


# Background task functions
def run_world_generation(job_id: str, request: WorldGenerationRequest):
    """Background task to generate a world and open a session on it."""
    registry = _registry()
    logger.info("Starting world generation", job_id=job_id)
    registry.update_job(job_id, status="running")

    try:
        config = WorldGenConfig(
            seed=request.seed,
            width=request.width,
            height=request.height,
            num_kingdoms=request.num_kingdoms,
            num_points=request.num_points,
            num_cities_per_kingdom=request.num_cities_per_kingdom,
        )
        simulation = Simulation.generate(config, event_log=EventLog(registry.event_log_size))
        world_id = registry.add_session(simulation)
        registry.update_job(
            job_id, status="completed", world_id=world_id, completed_at=datetime.now(timezone.utc)
        )
        logger.info("World generation completed", job_id=job_id, world_id=world_id)

    except Exception as e:
        logger.error("World generation failed", job_id=job_id, error=str(e))
        registry.update_job(
            job_id, status="failed", error_message=str(e), completed_at=datetime.now(timezone.utc)
        )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
