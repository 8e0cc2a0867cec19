"""
tests/unit/test_engine.py - Reconciliation engine tests

Tests for single-pass behaviour: lookups, creation, failures and status
persistence.
"""

import pytest


class TestKeys:
    """Test key handling."""

    def test_split_key(self):
        from primer.kernel.engine import split_key
        assert split_key("team-a/sample") == ("team-a", "sample")

    @pytest.mark.parametrize("key", ["sample", "/sample", "team-a/", ""])
    def test_invalid_key(self, key):
        from primer.kernel.engine import split_key
        with pytest.raises(ValueError):
            split_key(key)

    def test_artifact_url(self, make_request):
        from primer.kernel.engine import artifact_url
        url = artifact_url("primer.apps.example.com", make_request())
        assert url == "https://primer.apps.example.com/team-a-2021-06-01T12:00:00Z.zip"


class TestCatalog:
    """Test catalog order and gates."""

    def test_git_kinds(self):
        from primer.core.enums import ExportMethod
        from primer.kernel.catalog import applicable_kinds
        assert [k.value for k in applicable_kinds(ExportMethod.GIT)] == [
            "Job", "ServiceAccount", "Secret", "Route", "ClusterRole",
            "ClusterRoleBinding", "PersistentVolumeClaim", "Service",
        ]

    def test_download_kinds(self):
        from primer.core.enums import ExportMethod
        from primer.kernel.catalog import applicable_kinds
        kinds = [k.value for k in applicable_kinds(ExportMethod.DOWNLOAD)]
        assert kinds[-1] == "Deployment"
        assert kinds.index("NetworkPolicy") < kinds.index("PersistentVolumeClaim")

    def test_deployment_waits_for_job(self):
        from primer.core.enums import ExportMethod
        from primer.kernel.catalog import applicable_kinds
        assert "Deployment" not in [k.value for k in applicable_kinds(ExportMethod.DOWNLOAD, job_succeeded=False)]


class TestSinglePass:
    """Test one pass at a time."""

    def test_missing_export_is_noop(self, engine, store):
        from primer.core.enums import ReconcileOutcome
        result = engine.reconcile("team-a/missing")
        assert result.outcome == ReconcileOutcome.NOOP
        assert result.missing
        assert store.events == []

    def test_export_read_failure(self, engine, store, make_export):
        from primer.core.enums import ReconcileOutcome
        from primer.errors import StateStoreError
        key = make_export()
        store.fail_on("get", "Export")

        result = engine.reconcile(key)
        assert result.outcome == ReconcileOutcome.ERROR
        assert isinstance(result.error, StateStoreError)

    def test_first_pass_creates_job_only(self, engine, store, make_export):
        from primer.core.enums import ReconcileOutcome, ResourceKind
        result = engine.reconcile(make_export())

        assert result.outcome == ReconcileOutcome.REQUEUE
        assert result.created == ResourceKind.JOB
        assert store.created_kinds() == ["Job"]

    def test_one_creation_per_pass(self, engine, store, make_export):
        key = make_export()
        for expected in range(1, 5):
            engine.reconcile(key)
            assert len(store.created_kinds()) == expected

    def test_lookup_error_records_condition(self, engine, store, make_export, export_status):
        from primer.core.enums import ReconcileOutcome
        key = make_export()
        engine.reconcile(key)
        store.fail_on("get", "ServiceAccount", RuntimeError("etcd timeout"))

        result = engine.reconcile(key)

        assert result.outcome == ReconcileOutcome.ERROR
        [condition] = export_status()["conditions"]
        assert condition["status"] == "False"
        assert condition["reason"] == "Error"
        assert "etcd timeout" in condition["message"]
        assert store.created_kinds() == ["Job"]

    def test_secret_failure_is_reported(self, store, make_export, images, export_status):
        from primer.core.enums import ReconcileOutcome
        from primer.errors import SecretGenerationError
        from primer.kernel.engine import ReconciliationEngine
        from primer.resources.generator import ResourceSpecGenerator

        def broken():
            raise SecretGenerationError(OSError("no entropy"))

        engine = ReconciliationEngine(store, generator=ResourceSpecGenerator(images, secret_factory=broken))
        key = make_export()
        engine.reconcile(key)
        engine.reconcile(key)
        result = engine.reconcile(key)

        assert result.outcome == ReconcileOutcome.ERROR
        assert isinstance(result.error, SecretGenerationError)
        assert result.error.recoverable
        assert "no entropy" in export_status()["conditions"][0]["message"]

    def test_invalid_spec(self, engine, store, export_status):
        from primer.core.enums import ReconcileOutcome
        from primer.errors import InvalidExportError
        store.add({
            "apiVersion": "primer.gitops.io/v1alpha1",
            "kind": "Export",
            "metadata": {"name": "bad", "namespace": "team-a"},
            "spec": {"method": "ftp"},
        })

        result = engine.reconcile("team-a/bad")

        assert result.outcome == ReconcileOutcome.ERROR
        assert isinstance(result.error, InvalidExportError)
        assert not result.error.recoverable
        assert store.created_kinds() == []
        assert "invalid Export spec" in export_status("bad")["conditions"][0]["message"]

    def test_error_condition_write_is_best_effort(self, engine, store, make_export):
        from primer.core.enums import ReconcileOutcome
        from primer.errors import StateStoreError
        key = make_export()
        store.fail_on("create", "Job")
        store.fail_on("update_status", "Export")

        result = engine.reconcile(key)

        assert result.outcome == ReconcileOutcome.ERROR
        assert isinstance(result.error, StateStoreError)
        assert result.error.export_key == key


class TestStatusPersistence:
    """Test when the status is written."""

    def test_unchanged_status_not_written(self, engine, store, make_export, converge):
        key = make_export()
        converge(key)
        before = len(store.events)

        engine.reconcile(key)

        assert len(store.events) == before

    def test_route_recorded_once_host_assigned(self, engine, store, make_export, converge, child_ref, export_status):
        from primer.core.enums import ResourceKind
        key = make_export()
        converge(key)
        assert export_status() is None

        store.assign_host(child_ref(ResourceKind.ROUTE), "primer.apps.example.com")
        engine.reconcile(key)

        status = export_status()
        assert status["route"] == "https://primer.apps.example.com/team-a-2021-06-01T12:00:00Z.zip"
        assert status["completed"] is False

    def test_status_write_failure_is_error(self, engine, store, make_export, converge, child_ref):
        from primer.core.enums import ReconcileOutcome, ResourceKind
        from primer.errors import StatusPersistError
        key = make_export()
        converge(key)
        store.assign_host(child_ref(ResourceKind.ROUTE), "primer.apps.example.com")
        store.fail_on("update_status", "Export")

        result = engine.reconcile(key)

        assert result.outcome == ReconcileOutcome.ERROR
        assert isinstance(result.error, StatusPersistError)
