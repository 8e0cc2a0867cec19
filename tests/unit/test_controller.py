"""
tests/unit/test_controller.py - Controller runner and health API tests
"""

import asyncio
import pytest
from unittest.mock import Mock


@pytest.fixture
def controller_config():
    from primer.bootstrap.config import ControllerConfig
    return ControllerConfig(workers=1, resync_seconds=3600, backoff_base_seconds=0.01, backoff_max_seconds=0.05)


@pytest.fixture
def controller(engine, controller_config):
    from primer.deployment.worker import ExportController
    return ExportController(engine, config=controller_config, poll_interval=0.01)


# =============================================================================
# QUEUE
# =============================================================================

class TestReconcileQueue:
    """Test key dedupe and processing exclusivity."""

    @pytest.mark.asyncio
    async def test_dedupes_queued_keys(self):
        from primer.deployment.worker import ReconcileQueue
        queue = ReconcileQueue()
        queue.add("team-a/sample")
        queue.add("team-a/sample")
        assert queue.pending == 1

    @pytest.mark.asyncio
    async def test_key_not_handed_out_twice(self):
        from primer.deployment.worker import ReconcileQueue
        queue = ReconcileQueue()
        queue.add("team-a/sample")
        key = await queue.get(timeout=0.1)

        queue.add(key)
        assert await queue.get(timeout=0.01) is None

        queue.done(key)
        assert await queue.get(timeout=0.1) == key

    @pytest.mark.asyncio
    async def test_get_timeout(self):
        from primer.deployment.worker import ReconcileQueue
        assert await ReconcileQueue().get(timeout=0.01) is None

    @pytest.mark.asyncio
    async def test_backoff_grows_and_caps(self):
        from primer.deployment.worker import ReconcileQueue
        queue = ReconcileQueue(backoff_base=0.5, backoff_max=1.5)
        delays = [queue.backoff("team-a/sample") for _ in range(4)]
        assert delays == [0.5, 1.0, 1.5, 1.5]
        assert queue.failures("team-a/sample") == 4

        queue.forget("team-a/sample")
        assert queue.failures("team-a/sample") == 0
        queue.shutdown()

    @pytest.mark.asyncio
    async def test_add_after(self):
        from primer.deployment.worker import ReconcileQueue
        queue = ReconcileQueue()
        queue.add_after("team-a/sample", 0.01)
        assert queue.pending == 0
        assert await queue.get(timeout=0.5) == "team-a/sample"


# =============================================================================
# CONTROLLER
# =============================================================================

class TestExportController:
    """Test pass scheduling."""

    @pytest.mark.asyncio
    async def test_requeue_until_noop(self, controller, make_export, store):
        from primer.core.enums import ReconcileOutcome
        key = make_export()
        controller.enqueue(key)

        outcomes = []
        while True:
            result = await controller.process_next(timeout=0.1)
            if result is None:
                break
            outcomes.append(result.outcome)

        assert outcomes[-1] == ReconcileOutcome.NOOP
        assert outcomes.count(ReconcileOutcome.REQUEUE) == 8
        assert len(store.created_kinds()) == 8
        assert controller.last_result(key).outcome == ReconcileOutcome.NOOP
        assert controller.stats["requeues"] == 8

    @pytest.mark.asyncio
    async def test_deleted_export_result_dropped(self, controller, make_export, store, export_ref):
        key = make_export()
        controller.enqueue(key)
        await controller.process_next(timeout=0.1)
        assert controller.stats["tracked_exports"] == 1

        store.delete(export_ref())
        controller.enqueue(key)
        result = await controller.process_next(timeout=0.1)

        assert result.missing
        assert controller.last_result(key) is None
        assert controller.stats["tracked_exports"] == 0

    @pytest.mark.asyncio
    async def test_error_backs_off(self, controller, make_export, store):
        from primer.core.enums import ReconcileOutcome
        key = make_export()
        store.fail_on("create", "Job", times=1)
        controller.enqueue(key)

        result = await controller.process_next(timeout=0.1)
        assert result.outcome == ReconcileOutcome.ERROR
        assert controller.queue.failures(key) == 1
        assert controller.queue.pending == 0

        result = await controller.process_next(timeout=1.0)
        assert result.outcome == ReconcileOutcome.REQUEUE
        assert controller.queue.failures(key) == 0
        assert controller.stats["errors"] == 1
        controller.queue.shutdown()

    @pytest.mark.asyncio
    async def test_resync_enqueues_exports(self, controller, make_export):
        make_export("one", "team-a")
        make_export("two", "team-b")

        assert await controller.resync() == 2
        assert controller.queue.pending == 2

    @pytest.mark.asyncio
    async def test_resync_respects_namespace(self, engine, controller_config, make_export):
        from primer.deployment.worker import ExportController
        controller_config.watch_namespace = "team-b"
        controller = ExportController(engine, config=controller_config)
        make_export("one", "team-a")
        make_export("two", "team-b")

        assert await controller.resync() == 1

    @pytest.mark.asyncio
    async def test_run_and_stop(self, controller, make_export, store):
        make_export()
        task = asyncio.create_task(controller.run())

        for _ in range(200):
            await asyncio.sleep(0.01)
            if len(store.created_kinds()) == 8:
                break

        assert controller.is_running
        await controller.stop()
        await task

        assert not controller.is_running
        assert len(store.created_kinds()) == 8
        assert controller.stats["resyncs"] >= 1


# =============================================================================
# HEALTH API
# =============================================================================

class TestHealthAPI:
    """Test probes and status endpoints."""

    @pytest.fixture
    def fake_controller(self):
        controller = Mock()
        controller.is_running = False
        controller.stats = {"passes": 3, "is_running": False}
        controller.last_result.return_value = None
        return controller

    @pytest.fixture
    def client(self, fake_controller):
        from fastapi.testclient import TestClient
        from primer.deployment.api import create_fastapi_app
        return TestClient(create_fastapi_app(fake_controller))

    def test_healthz(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_readyz_follows_controller(self, client, fake_controller):
        assert client.get("/readyz").status_code == 503
        fake_controller.is_running = True
        response = client.get("/readyz")
        assert response.status_code == 200
        assert response.json()["ready"] is True

    def test_status(self, client):
        assert client.get("/status").json()["passes"] == 3

    def test_unknown_export(self, client):
        assert client.get("/exports/team-a/missing").status_code == 404

    def test_export_result(self, client, fake_controller):
        from primer.core.enums import ReconcileOutcome, ResourceKind
        from primer.kernel.result import ReconcileResult
        fake_controller.last_result.return_value = ReconcileResult(
            "team-a/sample", ReconcileOutcome.REQUEUE, created=ResourceKind.ROUTE,
        )

        body = client.get("/exports/team-a/sample").json()

        fake_controller.last_result.assert_called_with("team-a/sample")
        assert body["outcome"] == "requeue"
        assert body["created"] == "Route"
        assert body["error"] is None
