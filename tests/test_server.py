import inspect

import pytest
from fastapi.testclient import TestClient

from steptrack.adapters.base import SampleSource, SensorUnavailable
from steptrack.config import AppConfig
from steptrack.core.models import Sample
from steptrack.service import StepTrackingService
from steptrack.storage import MemoryStore


class _IdleSource(SampleSource):
    def __init__(self, sink) -> None:
        super().__init__(sink, interval=60.0)

    def _tick(self) -> None:
        pass


def _unavailable(_sink) -> SampleSource:
    raise SensorUnavailable("permission denied")


@pytest.fixture()
def service() -> StepTrackingService:
    service = StepTrackingService(
        config=AppConfig(),
        store=MemoryStore(),
        sensor_factory=_unavailable,
        simulation_factory=_IdleSource,
    )
    yield service
    service.close()


@pytest.fixture()
def client(service: StepTrackingService) -> TestClient:
    from steptrack.ui import create_app

    return TestClient(create_app(service))


def _walk(service: StepTrackingService, steps: int) -> None:
    for i in range(steps):
        service.observe(Sample(0.0, 0.0, 0.0), i * 1.0)
        service.observe(Sample(0.0, 1.5, 0.0), i * 1.0 + 0.05)
        service.observe(Sample(0.0, 1.5, 0.0), i * 1.0 + 0.10)


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_current_steps(client: TestClient, service: StepTrackingService) -> None:
    service.set_goal(4)
    _walk(service, 3)

    body = client.get("/steps").json()

    assert body["count"] == 3
    assert body["goal"] == 4
    assert body["percent_complete"] == 75
    assert body["progress_level"] == "HALFWAY"


def test_goal_update_and_validation(client: TestClient, service: StepTrackingService) -> None:
    response = client.put("/steps/goal", json={"goal": 5000})
    assert response.status_code == 200
    assert response.json()["goal"] == 5000

    response = client.put("/steps/goal", json={"goal": -1})
    assert response.status_code == 422
    assert service.current_snapshot().goal == 5000


def test_reset_steps(client: TestClient, service: StepTrackingService) -> None:
    _walk(service, 2)

    response = client.post("/steps/reset")

    assert response.status_code == 200
    assert response.json()["count"] == 0


def test_history_and_summary(client: TestClient, service: StepTrackingService) -> None:
    _walk(service, 2)

    history = client.get("/steps/history", params={"days": 7}).json()
    assert len(history) == 1
    assert history[0]["count"] == 2

    summary = client.get("/steps/summary", params={"timeframe": "monthly"}).json()
    assert summary["days"] == 1
    assert summary["total_steps"] == 2
    assert summary["best_day_steps"] == 2

    assert client.get("/steps/history", params={"days": 0}).status_code == 422
    assert client.get("/steps/history", params={"days": 91}).status_code == 422


def test_tracking_falls_back_to_simulation(client: TestClient) -> None:
    response = client.post("/tracking/start")
    assert response.status_code == 503
    assert client.get("/tracking").json() == {"mode": "STOPPED"}

    assert client.post("/simulation/start").json() == {"mode": "SIMULATED"}
    assert client.post("/simulation/stop").json() == {"mode": "STOPPED"}

    client.post("/simulation/start")
    assert client.post("/tracking/stop").json() == {"mode": "STOPPED"}


def test_state_changing_routes_run_in_threadpool(client: TestClient) -> None:
    # 会写文件或等待采集线程的路由不能占用事件循环
    blocking = {
        "/steps/reset",
        "/steps/goal",
        "/tracking/start",
        "/tracking/stop",
        "/simulation/start",
        "/simulation/stop",
    }
    endpoints = {route.path: route.endpoint for route in client.app.routes if route.path in blocking}

    assert set(endpoints) == blocking
    for path, endpoint in endpoints.items():
        assert not inspect.iscoroutinefunction(endpoint), path
