"""FastAPI 应用，暴露计步服务的控制与查询接口。"""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from steptrack.adapters.base import SensorUnavailable
from steptrack.core.aggregator import InvalidGoal
from steptrack.core.history import TIMEFRAME_DAYS
from steptrack.core.models import DailySnapshot
from steptrack.service import StepTrackingService


class GoalUpdate(BaseModel):
    goal: int


def _snapshot_payload(snapshot: DailySnapshot) -> Dict[str, Any]:
    payload = snapshot.to_dict()
    payload["percent_complete"] = snapshot.percent_complete
    payload["progress_level"] = snapshot.progress_level.name
    return payload


def create_app(service: Optional[StepTrackingService] = None) -> FastAPI:
    """构建 FastAPI 应用并注册路由。"""

    app = FastAPI(title="steptrack")
    _service = service if service is not None else StepTrackingService()
    app.state.service = _service

    @app.get("/health", tags=["system"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/steps", tags=["steps"])
    async def current_steps() -> dict:
        return _snapshot_payload(_service.current_snapshot())

    @app.get("/steps/history", tags=["steps"])
    async def step_history(days: int = Query(7, ge=1, le=_service.config.history_max_days)) -> list:
        return [record.to_dict() for record in _service.get_step_history(days)]

    @app.get("/steps/summary", tags=["steps"])
    async def step_summary(timeframe: Literal["weekly", "monthly", "all"] = "weekly") -> dict:
        days = min(TIMEFRAME_DAYS[timeframe], _service.config.history_max_days)
        summary = _service.history_summary(days)
        return {
            "timeframe": timeframe,
            "days": summary.days,
            "total_steps": summary.total_steps,
            "average_steps": summary.average_steps,
            "goal_reached_days": summary.goal_reached_days,
            "best_day_steps": summary.best_day_steps,
        }

    @app.post("/steps/reset", tags=["steps"])
    def reset_steps() -> dict:
        _service.reset_step_count()
        return _snapshot_payload(_service.current_snapshot())

    @app.put("/steps/goal", tags=["steps"])
    def update_goal(update: GoalUpdate) -> dict:
        try:
            _service.set_goal(update.goal)
        except InvalidGoal as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return _snapshot_payload(_service.current_snapshot())

    @app.get("/tracking", tags=["tracking"])
    async def tracking_state() -> dict[str, str]:
        return {"mode": _service.mode.name}

    @app.post("/tracking/start", tags=["tracking"])
    def start_tracking() -> dict[str, str]:
        try:
            _service.start_tracking()
        except SensorUnavailable as exc:
            raise HTTPException(
                status_code=503,
                detail={"error": str(exc), "hint": "POST /simulation/start 以使用模拟计步"},
            ) from exc
        return {"mode": _service.mode.name}

    @app.post("/tracking/stop", tags=["tracking"])
    def stop_tracking() -> dict[str, str]:
        _service.stop_tracking()
        return {"mode": _service.mode.name}

    @app.post("/simulation/start", tags=["tracking"])
    def start_simulation() -> dict[str, str]:
        _service.start_simulation()
        return {"mode": _service.mode.name}

    @app.post("/simulation/stop", tags=["tracking"])
    def stop_simulation() -> dict[str, str]:
        _service.stop_simulation()
        return {"mode": _service.mode.name}

    return app
