# observador_app/main.py

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

# Config
from observador_app.config.settings import settings

# Core components
from observador_app.core.graph_layout import build_board
from observador_app.core.records import (
    AgentDecision,
    CoherenceBreakdown,
    DailyEntry,
    EntityCollections,
    FlowItem,
    ProjectRecord,
    RelationshipRecord,
)

# Engines
from observador_app.modules.daily_mapping import build_dashboard_summary, build_insights, build_statistics
from observador_app.modules.economy import live_economy, period_start, revenue_forecast, revenue_history
from observador_app.modules.energy_flows import build_energy_flows, rebalance_flows
from observador_app.modules.node_interpreter import (
    analyze_system,
    compact_nodes_from_records,
    format_visual_context,
    summarize_system,
)
from observador_app.modules.snapshot_tracker import NodeSnapshotTracker

# Persistence components
from observador_app.persistence import init_db
from observador_app.persistence.database import get_db
from observador_app.persistence.repository import NodeSnapshotRepository

# Configure logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        init_db()
        logger.info("Database initialized check complete.")
    except Exception as db_init_e:
        logger.exception("Error during database initialization check: %s", db_init_e)
        raise
    yield


app = FastAPI(title="Observador 4D Metrics API", version="1.0", lifespan=lifespan)


# --- Pydantic models ---
class BoardRequest(BaseModel):
    user_name: Optional[str] = None
    collections: EntityCollections = Field(default_factory=EntityCollections)
    coherence: Optional[CoherenceBreakdown] = None


class ContextRequest(BaseModel):
    user_id: str
    collections: EntityCollections = Field(default_factory=EntityCollections)
    days: int = Field(settings.trend_lookback_days, ge=1, description="Trend lookback window in days.")


class StatisticsRequest(BaseModel):
    entries: List[DailyEntry] = Field(default_factory=list)
    days: int = Field(30, ge=1)


class DashboardRequest(BaseModel):
    entries: List[DailyEntry] = Field(default_factory=list)
    limit: int = Field(7, ge=1, description="Most recent entries to summarize.")


class EnergyFlowsRequest(BaseModel):
    projects: List[ProjectRecord] = Field(default_factory=list)
    relationships: List[RelationshipRecord] = Field(default_factory=list)


class FlowsUpdateRequest(BaseModel):
    flows: List[FlowItem]


class RevenueHistoryRequest(BaseModel):
    decisions: List[AgentDecision] = Field(default_factory=list)
    period: str = Field("7d", description="One of 7d, 30d, 90d.")


class LiveEconomyRequest(BaseModel):
    decisions: List[AgentDecision] = Field(default_factory=list)


class SnapshotRequest(BaseModel):
    user_id: str
    node_id: str = Field(..., min_length=1)
    node_type: str = Field(..., min_length=1)
    node_label: str = Field(..., min_length=1)
    energy: float = 0.5
    coherence: float = 0.5
    connections: int = 0
    trigger_type: str = "manual"
    trigger_reason: Optional[str] = None


class SnapshotResponse(BaseModel):
    created: bool
    reason: str


def _tracker(db: Session) -> NodeSnapshotTracker:
    return NodeSnapshotTracker(NodeSnapshotRepository(db))


# --- Board & interpretation ---
@app.post("/board")
async def board_endpoint(request: BoardRequest):
    """Full 3D board: observer, four entity rings, links and summary stats."""
    try:
        return build_board(request.collections, request.user_name, request.coherence)
    except Exception as e:
        logger.exception("Error in /board: %s", e)
        raise HTTPException(status_code=500, detail=f"Failed to build board: {e}")


@app.post("/decision-mode")
async def decision_mode_endpoint(request: BoardRequest):
    try:
        graph = build_board(request.collections, request.user_name, request.coherence)
        analysis = analyze_system(graph["nodes"], graph["links"])
        analysis["metadata"] = {
            "total_nodes": graph["stats"]["total"],
            "total_links": graph["stats"]["connections"],
            "breakdown": graph["stats"]["breakdown"],
            "last_updated": datetime.utcnow().isoformat(),
        }
        return analysis
    except Exception as e:
        logger.exception("Error in /decision-mode: %s", e)
        raise HTTPException(status_code=500, detail=f"Failed to analyze system: {e}")


@app.post("/dashboard/context")
async def dashboard_context_endpoint(request: ContextRequest, db: Session = Depends(get_db)):
    """Compact system context for the assistant, with momentum from stored snapshots."""
    try:
        trends = _tracker(db).trend_counts(request.user_id, days=request.days)
        context = summarize_system(compact_nodes_from_records(request.collections), trends)
        return {
            "context": context,
            "visual_context": format_visual_context(context),
            "timestamp": datetime.utcnow().isoformat(),
        }
    except Exception as e:
        logger.exception("Error in /dashboard/context for user %s: %s", request.user_id, e)
        raise HTTPException(status_code=500, detail=f"Failed to build context: {e}")


# --- Daily mapping ---
@app.post("/daily-mapping/statistics")
async def statistics_endpoint(request: StatisticsRequest):
    try:
        return build_statistics(request.entries, request.days)
    except Exception as e:
        logger.exception("Error in /daily-mapping/statistics: %s", e)
        raise HTTPException(status_code=500, detail=f"Failed to compute statistics: {e}")


@app.post("/daily-mapping/insights")
async def insights_endpoint(request: StatisticsRequest):
    try:
        return build_insights(request.entries, request.days)
    except Exception as e:
        logger.exception("Error in /daily-mapping/insights: %s", e)
        raise HTTPException(status_code=500, detail=f"Failed to build insights: {e}")


@app.post("/dashboard")
async def dashboard_endpoint(request: DashboardRequest):
    """Averages, trends and synchronicities over the latest daily entries."""
    try:
        return build_dashboard_summary(request.entries, request.limit)
    except Exception as e:
        logger.exception("Error in /dashboard: %s", e)
        raise HTTPException(status_code=500, detail=f"Failed to build dashboard summary: {e}")


# --- Energy flows ---
@app.post("/energy-flows")
async def energy_flows_endpoint(request: EnergyFlowsRequest):
    try:
        return build_energy_flows(request.projects, request.relationships)
    except Exception as e:
        logger.exception("Error in /energy-flows: %s", e)
        raise HTTPException(status_code=500, detail=f"Failed to compute energy flows: {e}")


@app.put("/energy-flows")
async def update_energy_flows_endpoint(request: FlowsUpdateRequest):
    try:
        return {
            "flows": rebalance_flows([f.model_dump(exclude_none=True) for f in request.flows]),
            "message": "Flujos de energía actualizados correctamente",
        }
    except Exception as e:
        logger.exception("Error in PUT /energy-flows: %s", e)
        raise HTTPException(status_code=500, detail=f"Failed to rebalance flows: {e}")


# --- Economy ---
@app.post("/economy/revenue-history")
async def revenue_history_endpoint(request: RevenueHistoryRequest):
    try:
        now = datetime.utcnow()
        result = revenue_history(request.decisions, period_start(request.period, now), now)
        result["period"] = request.period
        return result
    except Exception as e:
        logger.exception("Error in /economy/revenue-history: %s", e)
        raise HTTPException(status_code=500, detail=f"Failed to build revenue history: {e}")


@app.post("/economy/live")
async def live_economy_endpoint(request: LiveEconomyRequest):
    try:
        result = live_economy(request.decisions)
        result["last_update"] = datetime.utcnow().isoformat()
        return result
    except Exception as e:
        logger.exception("Error in /economy/live: %s", e)
        raise HTTPException(status_code=500, detail=f"Failed to compute live economy: {e}")


@app.post("/economy/predictions")
async def predictions_endpoint(request: LiveEconomyRequest):
    try:
        result = revenue_forecast(request.decisions)
        result["last_update"] = datetime.utcnow().isoformat()
        return result
    except Exception as e:
        logger.exception("Error in /economy/predictions: %s", e)
        raise HTTPException(status_code=500, detail=f"Failed to forecast revenue: {e}")


# --- Snapshots ---
@app.post("/snapshots", response_model=SnapshotResponse)
async def create_snapshot_endpoint(request: SnapshotRequest, db: Session = Depends(get_db)):
    try:
        created, reason = _tracker(db).record_if_changed(
            user_id=request.user_id,
            node_id=request.node_id,
            node_type=request.node_type,
            node_label=request.node_label,
            energy=request.energy,
            coherence=request.coherence,
            connections=request.connections,
            trigger_type=request.trigger_type,
            trigger_reason=request.trigger_reason,
        )
        return SnapshotResponse(created=created, reason=reason)
    except Exception as e:
        logger.exception("Error in POST /snapshots for user %s: %s", request.user_id, e)
        raise HTTPException(status_code=500, detail=f"Failed to save snapshot: {e}")


@app.post("/snapshots/full")
async def full_snapshot_endpoint(request: ContextRequest, db: Session = Depends(get_db)):
    """Snapshot every node of the user's board, e.g. right after onboarding."""
    try:
        graph = build_board(request.collections)
        created = _tracker(db).record_graph(
            request.user_id,
            graph,
            trigger_type="onboarding",
            trigger_reason="Snapshot inicial de onboarding",
        )
        return {"created": created}
    except Exception as e:
        logger.exception("Error in /snapshots/full for user %s: %s", request.user_id, e)
        raise HTTPException(status_code=500, detail=f"Failed to create full snapshot: {e}")


@app.get("/snapshots")
async def list_snapshots_endpoint(
    user_id: str,
    node_id: Optional[str] = None,
    node_type: Optional[str] = None,
    days: int = Query(settings.timeline_lookback_days, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    try:
        return _tracker(db).timeline(
            user_id, days=days, node_id=node_id, node_type=node_type, limit=limit
        )
    except Exception as e:
        logger.exception("Error in GET /snapshots for user %s: %s", user_id, e)
        raise HTTPException(status_code=500, detail=f"Failed to load snapshots: {e}")


@app.get("/snapshots/trend")
async def node_trend_endpoint(
    user_id: str,
    node_id: str,
    days: int = Query(settings.trend_lookback_days, ge=1),
    db: Session = Depends(get_db),
):
    try:
        return _tracker(db).node_trend(user_id, node_id, days=days)
    except Exception as e:
        logger.exception("Error in /snapshots/trend for node %s: %s", node_id, e)
        raise HTTPException(status_code=500, detail=f"Failed to compute trend: {e}")


@app.delete("/snapshots")
async def prune_snapshots_endpoint(
    user_id: str,
    days_to_keep: int = Query(settings.snapshot_retention_days, ge=1),
    db: Session = Depends(get_db),
):
    try:
        deleted = _tracker(db).prune(user_id, days_to_keep=days_to_keep)
        return {"deleted": deleted, "days_to_keep": days_to_keep}
    except Exception as e:
        logger.exception("Error in DELETE /snapshots for user %s: %s", user_id, e)
        raise HTTPException(status_code=500, detail=f"Failed to prune snapshots: {e}")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("observador_app.main:app", host="0.0.0.0", port=8000, reload=True)
