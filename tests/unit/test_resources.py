"""
tests/unit/test_resources.py - Naming, ownership and session secret tests
"""

import pytest
from unittest.mock import patch


class TestNaming:
    """Test deterministic names."""

    def test_names(self, make_request):
        from primer.resources.naming import cluster_resource_name, resource_name, tls_secret_name
        request = make_request(name="nightly", namespace="team-b")
        assert resource_name(request) == "primer-export-nightly"
        assert cluster_resource_name(request) == "primer-export-team-b-nightly"
        assert tls_secret_name(request) == "primer-export-nightly-tls"

    def test_pod_labels(self, make_request):
        from primer.resources.naming import pod_labels
        assert pod_labels(make_request()) == {
            "app.kubernetes.io/name": "primer-export-sample",
            "app.kubernetes.io/component": "primer-export-sample",
            "app.kubernetes.io/part-of": "primer-export",
        }


class TestOwnershipTable:
    """Test the export -> children table."""

    def test_every_kind_has_a_child(self, make_request):
        from primer.core.enums import ResourceKind
        from primer.resources.ownership import OwnershipTable
        table = OwnershipTable.for_export(make_request())
        assert set(table.children) == set(ResourceKind)

    def test_cluster_scoped_children_do_not_cascade(self, make_request):
        from primer.core.enums import ResourceKind
        from primer.resources.ownership import OwnershipTable
        table = OwnershipTable.for_export(make_request())

        role = table.children[ResourceKind.CLUSTER_ROLE]
        assert role.ref.namespace is None
        assert not role.cascade
        assert ResourceKind.CLUSTER_ROLE not in [c.kind for c in table.cascading()]
        assert ResourceKind.SERVICE in [c.kind for c in table.cascading()]

    def test_transient_in_deletion_order(self, make_request):
        from primer.core.enums import ResourceKind
        from primer.resources.ownership import OwnershipTable
        table = OwnershipTable.for_export(make_request())
        assert [c.kind for c in table.transient()] == [
            ResourceKind.JOB,
            ResourceKind.CLUSTER_ROLE,
            ResourceKind.CLUSTER_ROLE_BINDING,
        ]

    def test_metadata(self, make_request):
        from primer.core.enums import ResourceKind
        from primer.resources.ownership import OwnershipTable
        table = OwnershipTable.for_export(make_request())

        metadata = table.metadata_for(ResourceKind.SERVICE)
        assert metadata["name"] == "primer-export-sample"
        assert metadata["namespace"] == "team-a"
        assert metadata["ownerReferences"][0]["kind"] == "Export"

        assert table.metadata_for(ResourceKind.CLUSTER_ROLE_BINDING) == {"name": "primer-export-team-a-sample"}


class TestSessionSecret:
    """Test session token generation."""

    def test_shape(self):
        from primer.resources.secrets import generate_session_secret
        token = generate_session_secret()
        digits = [c for c in token if c.isdigit()]
        letters = [c for c in token if c.isalpha()]

        assert len(token) == 43
        assert sorted(digits) == list("0123456789")
        assert len(letters) == 33
        assert len(set(letters)) == 33

    def test_tokens_differ(self):
        from primer.resources.secrets import generate_session_secret
        assert generate_session_secret() != generate_session_secret()

    def test_impossible_shape(self):
        from primer.resources.secrets import generate_session_secret
        with pytest.raises(ValueError):
            generate_session_secret(length=20, num_digits=11)

    def test_random_source_failure(self):
        from primer.errors import SecretGenerationError
        from primer.resources.secrets import generate_session_secret

        with patch("primer.resources.secrets.secrets.SystemRandom.sample", side_effect=OSError("no entropy")):
            with pytest.raises(SecretGenerationError) as exc:
                generate_session_secret()
        assert exc.value.recoverable
        assert "no entropy" in str(exc.value)
