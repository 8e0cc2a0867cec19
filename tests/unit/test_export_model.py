"""
tests/unit/test_export_model.py - Export request model tests
"""

import pytest


class TestExportSpec:
    """Test spec validation."""

    def test_git_spec(self, make_request):
        from primer.core.enums import ExportMethod
        request = make_request()
        assert request.spec_error is None
        assert request.method == ExportMethod.GIT
        assert request.spec.repo == "https://x/y"
        assert request.spec.branch == "main"

    def test_aliases(self):
        from primer.core.export import ExportSpec
        spec = ExportSpec.model_validate({
            "method": "git",
            "repository": "git@example.com:org/repo.git",
            "secretRef": "keys",
        })
        assert spec.repo == "git@example.com:org/repo.git"
        assert spec.secret == "keys"

    def test_download_spec_needs_no_repo(self, make_request):
        from primer.core.enums import ExportMethod
        request = make_request(method="download")
        assert request.method == ExportMethod.DOWNLOAD
        assert request.spec.repo == ""

    def test_unknown_method_is_reported(self):
        from primer.core.export import ExportRequest
        request = ExportRequest.from_dict({
            "metadata": {"name": "bad", "namespace": "team-a"},
            "spec": {"method": "ftp"},
        })
        assert request.spec is None
        assert "method" in request.spec_error

    def test_missing_spec_is_reported(self):
        from primer.core.export import ExportRequest
        request = ExportRequest.from_dict({"metadata": {"name": "bad", "namespace": "team-a"}})
        assert request.spec is None
        assert request.spec_error


class TestExportRequest:
    """Test identity, owner reference and status rendering."""

    def test_identity(self, make_request):
        request = make_request(name="nightly", namespace="team-b")
        assert request.key == "team-b/nightly"
        assert request.created_at == "2021-06-01T12:00:00Z"

    def test_owner_reference(self, make_request):
        ref = make_request().owner_reference()
        assert ref == {
            "apiVersion": "primer.gitops.io/v1alpha1",
            "kind": "Export",
            "name": "sample",
            "uid": "uid-team-a-sample",
            "controller": True,
            "blockOwnerDeletion": True,
        }

    def test_status_defaults(self, make_request):
        status = make_request().status
        assert status.completed is False
        assert status.route == ""
        assert status.conditions is None

    def test_to_dict_keeps_object_and_replaces_status(self, make_request):
        request = make_request()
        request.resource_version = "7"
        request.status.completed = True

        obj = request.to_dict()
        assert obj["spec"]["repo"] == "https://x/y"
        assert obj["metadata"]["resourceVersion"] == "7"
        assert obj["status"] == {"completed": True, "route": ""}

    def test_status_round_trip_keeps_conditions(self):
        from primer.core.export import ExportStatus
        data = {
            "completed": False,
            "route": "",
            "conditions": [{
                "type": "Reconciled",
                "status": "False",
                "reason": "Error",
                "message": "boom",
                "lastTransitionTime": "2021-06-01T12:00:00Z",
            }],
        }
        assert ExportStatus.from_dict(data).to_dict() == data


class TestTimestamps:
    """Test RFC3339 helpers."""

    def test_parse_and_format(self):
        from primer.core.timestamps import format_rfc3339, parse_timestamp
        assert format_rfc3339(parse_timestamp("2021-06-01T12:00:00Z")) == "2021-06-01T12:00:00Z"

    def test_empty_values(self):
        from primer.core.timestamps import format_rfc3339, parse_timestamp
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None
        assert format_rfc3339(None) == ""
