"""Integration tests for resources.get / resources.apply / resources.delete.

Drives ResourceDispatcher against the FakeControlPlane and checks dry-run
routing, guard placement and partial-apply reporting.
"""

from __future__ import annotations

import pytest

from kubegate.dispatch.manifest import MISSING_FIELDS_REASON
from kubegate.dispatch.resources import DEFAULT_FIELD_MANAGER, dry_run_param
from kubegate.errors import GuardViolation, UpstreamError, ValidationError
from kubegate.models.operations import ViolationKind

pytestmark = pytest.mark.integration

_TWO_CONFIGMAPS = """\
apiVersion: v1
kind: ConfigMap
metadata:
  name: first
data: {a: "1"}
---
apiVersion: v1
kind: ConfigMap
metadata:
  name: second
  namespace: team-b
data: {b: "2"}
"""

_CLUSTER_ROLE = """\
apiVersion: rbac.authorization.k8s.io/v1
kind: ClusterRole
metadata:
  name: reader
rules:
- apiGroups: [""]
  resources: ["pods"]
  verbs: ["get", "list"]
"""


# ---------------------------------------------------------------------------
# Dry-run mapping
# ---------------------------------------------------------------------------


class TestDryRunParam:
    @pytest.mark.parametrize(("flag", "expected"), [(None, "All"), (True, "All"), (False, None)])
    def test_only_explicit_false_disables(self, flag: bool | None, expected: str | None) -> None:
        assert dry_run_param(flag) == expected


# ---------------------------------------------------------------------------
# resources.get
# ---------------------------------------------------------------------------


class TestGetOrList:
    async def test_get_by_name_returns_full_object(self, resources, control_plane, deployment_factory) -> None:
        control_plane.add_object(deployment_factory())
        result = await resources.get_or_list(version="v1", kind="Deployment", group="apps", name="web")
        assert result["item"]["spec"]["replicas"] == 2
        (call,) = control_plane.calls_to("get_resource")
        assert call["ident"].namespace == "default"

    async def test_list_returns_summaries(self, resources, control_plane, deployment_factory) -> None:
        control_plane.add_object(deployment_factory("web", uid="u1"))
        control_plane.add_object(deployment_factory("api", uid="u2"))
        result = await resources.get_or_list(version="v1", kind="Deployment", group="apps", label_selector="app=web")
        assert {item["name"] for item in result["items"]} == {"web", "api"}
        expected_keys = {"apiVersion", "kind", "name", "namespace", "uid", "creationTimestamp"}
        assert all(set(item) == expected_keys for item in result["items"])
        (call,) = control_plane.calls_to("list_resources")
        assert call["label_selector"] == "app=web"

    async def test_list_respects_namespace(self, resources, control_plane, deployment_factory) -> None:
        control_plane.add_object(deployment_factory("web", namespace="team-a"))
        result = await resources.get_or_list(version="v1", kind="Deployment", group="apps")
        assert result["items"] == []
        result = await resources.get_or_list(version="v1", kind="Deployment", group="apps", namespace="team-a")
        assert [item["name"] for item in result["items"]] == ["web"]

    async def test_get_not_guarded_in_read_only(
        self, resources, control_plane, guard_settings, deployment_factory
    ) -> None:
        guard_settings.read_only = True
        control_plane.add_object(deployment_factory())
        result = await resources.get_or_list(version="v1", kind="Deployment", group="apps", name="web")
        assert result["item"]["metadata"]["name"] == "web"

    async def test_missing_object_raises_upstream(self, resources) -> None:
        with pytest.raises(UpstreamError) as excinfo:
            await resources.get_or_list(version="v1", kind="ConfigMap", name="ghost")
        assert excinfo.value.status == 404

    async def test_empty_kind_rejected_before_api(self, resources, control_plane) -> None:
        with pytest.raises(ValidationError):
            await resources.get_or_list(version="v1", kind="")
        assert control_plane.calls == []


# ---------------------------------------------------------------------------
# resources.apply
# ---------------------------------------------------------------------------


class TestApply:
    async def test_apply_defaults_to_server_side_dry_run(self, resources, control_plane) -> None:
        result = await resources.apply(_TWO_CONFIGMAPS)
        assert result == {
            "results": [
                {"kind": "ConfigMap", "name": "first", "namespace": "default"},
                {"kind": "ConfigMap", "name": "second", "namespace": "team-b"},
            ]
        }
        calls = control_plane.calls_to("apply_resource")
        assert [c["dry_run"] for c in calls] == ["All", "All"]
        assert all(c["server_side"] is True for c in calls)
        assert all(c["field_manager"] == DEFAULT_FIELD_MANAGER for c in calls)
        assert control_plane.objects == {}

    async def test_apply_for_real_when_dry_run_false(self, resources, control_plane) -> None:
        await resources.apply(_TWO_CONFIGMAPS, dry_run=False, field_manager="ops", server_side_apply=False)
        calls = control_plane.calls_to("apply_resource")
        assert [c["dry_run"] for c in calls] == [None, None]
        assert calls[0]["field_manager"] == "ops"
        assert calls[0]["server_side"] is False
        assert ("v1", "ConfigMap", "team-b", "second") in control_plane.objects

    async def test_invalid_document_reported_inline(self, resources, control_plane) -> None:
        blob = _TWO_CONFIGMAPS.split("---")[0] + "---\napiVersion: v1\nkind: ConfigMap\nmetadata: {}\n"
        result = await resources.apply(blob)
        assert result["results"][0]["name"] == "first"
        assert result["results"][1] == {"error": MISSING_FIELDS_REASON}
        assert len(control_plane.calls_to("apply_resource")) == 1

    async def test_guard_checks_each_document_namespace(self, resources, control_plane, guard_settings) -> None:
        """A document outside the allowlist stops the batch after earlier documents were applied."""
        guard_settings.namespace_allowlist = ("default",)
        with pytest.raises(GuardViolation) as excinfo:
            await resources.apply(_TWO_CONFIGMAPS)
        assert excinfo.value.kind is ViolationKind.NS_NOT_ALLOWED
        payload = excinfo.value.to_payload()
        assert payload["results"] == [{"kind": "ConfigMap", "name": "first", "namespace": "default"}]
        assert len(control_plane.calls_to("apply_resource")) == 1

    async def test_document_without_namespace_checked_against_default(
        self, resources, control_plane, guard_settings
    ) -> None:
        guard_settings.namespace_allowlist = ("team-b",)
        with pytest.raises(GuardViolation):
            await resources.apply(_TWO_CONFIGMAPS)
        assert control_plane.calls_to("apply_resource") == []

    async def test_cluster_scoped_kind_skips_namespace_allowlist(
        self, resources, control_plane, guard_settings
    ) -> None:
        guard_settings.namespace_allowlist = ("team-a",)
        result = await resources.apply(_CLUSTER_ROLE)
        assert result["results"] == [{"kind": "ClusterRole", "name": "reader", "namespace": None}]
        (call,) = control_plane.calls_to("apply_resource")
        assert call["ident"].api_version == "rbac.authorization.k8s.io/v1"

    async def test_cluster_scoped_kind_still_kind_checked(self, resources, control_plane, guard_settings) -> None:
        guard_settings.namespace_allowlist = ("team-a",)
        guard_settings.kind_allowlist = ("ConfigMap",)
        with pytest.raises(GuardViolation) as excinfo:
            await resources.apply(_CLUSTER_ROLE)
        assert excinfo.value.kind is ViolationKind.KIND_NOT_ALLOWED
        assert control_plane.calls_to("apply_resource") == []

    async def test_default_namespace_read_per_call(self, resources, control_plane, guard_settings) -> None:
        await resources.apply(_TWO_CONFIGMAPS.split("---")[0])
        guard_settings.default_namespace = "sandbox"
        await resources.apply(_TWO_CONFIGMAPS.split("---")[0])
        calls = control_plane.calls_to("apply_resource")
        assert [c["ident"].namespace for c in calls] == ["default", "sandbox"]

    async def test_read_only_blocks_even_dry_run(self, resources, control_plane, guard_settings) -> None:
        guard_settings.read_only = True
        with pytest.raises(GuardViolation) as excinfo:
            await resources.apply(_TWO_CONFIGMAPS, dry_run=True)
        assert excinfo.value.kind is ViolationKind.READ_ONLY_BLOCKED
        assert control_plane.calls == []

    async def test_kind_allowlist(self, resources, guard_settings) -> None:
        guard_settings.kind_allowlist = ("Deployment",)
        with pytest.raises(GuardViolation) as excinfo:
            await resources.apply(_TWO_CONFIGMAPS)
        assert excinfo.value.kind is ViolationKind.KIND_NOT_ALLOWED

    async def test_upstream_failure_carries_partial_results(self, resources, control_plane) -> None:
        real_apply = control_plane.apply_resource
        seen: list[str] = []

        async def flaky(ident, body, **kwargs):
            seen.append(ident.name)
            if ident.name == "second":
                raise UpstreamError("apply failed: Conflict", status=409, reason="Conflict")
            return await real_apply(ident, body, **kwargs)

        control_plane.apply_resource = flaky
        with pytest.raises(UpstreamError) as excinfo:
            await resources.apply(_TWO_CONFIGMAPS)
        assert seen == ["first", "second"]
        assert excinfo.value.details["results"] == [{"kind": "ConfigMap", "name": "first", "namespace": "default"}]
        assert excinfo.value.to_payload()["status"] == 409

    async def test_apply_takes_one_rate_limit_token(self, resources, limiter) -> None:
        await resources.apply(_TWO_CONFIGMAPS)
        assert limiter.available("resources.apply") == 9


# ---------------------------------------------------------------------------
# resources.delete
# ---------------------------------------------------------------------------


class TestDelete:
    async def test_delete_defaults_to_dry_run(self, resources, control_plane) -> None:
        result = await resources.delete(version="v1", kind="ConfigMap", name="first")
        assert result == {"status": "Success"}
        (call,) = control_plane.calls_to("delete_resource")
        assert call["dry_run"] == "All"

    async def test_delete_for_real(self, resources, control_plane) -> None:
        await resources.delete(
            version="v1",
            kind="Deployment",
            group="apps",
            name="web",
            namespace="team-a",
            propagation_policy="Foreground",
            grace_period_seconds=0,
            dry_run=False,
        )
        (call,) = control_plane.calls_to("delete_resource")
        assert call["dry_run"] is None
        assert call["propagation_policy"] == "Foreground"
        assert call["grace_period_seconds"] == 0
        assert call["ident"].namespace == "team-a"

    async def test_non_status_response_reports_success(self, resources, control_plane, deployment_factory) -> None:
        control_plane.delete_response = deployment_factory()
        result = await resources.delete(version="v1", kind="Deployment", group="apps", name="web")
        assert result == {"status": "Success"}

    async def test_failure_status_passed_through(self, resources, control_plane) -> None:
        control_plane.delete_response = {"kind": "Status", "status": "Failure"}
        assert await resources.delete(version="v1", kind="Pod", name="p") == {"status": "Failure"}

    async def test_cluster_scoped_delete_under_allowlist(self, resources, control_plane, guard_settings) -> None:
        guard_settings.namespace_allowlist = ("team-a",)
        result = await resources.delete(version="v1", kind="Namespace", name="scratch", dry_run=False)
        assert result == {"status": "Success"}
        assert len(control_plane.calls_to("delete_resource")) == 1

    async def test_namespaced_delete_outside_allowlist_denied(
        self, resources, control_plane, guard_settings
    ) -> None:
        guard_settings.namespace_allowlist = ("team-a",)
        with pytest.raises(GuardViolation) as excinfo:
            await resources.delete(version="v1", kind="ConfigMap", name="first")
        assert excinfo.value.kind is ViolationKind.NS_NOT_ALLOWED
        assert control_plane.calls == []

    async def test_read_only_blocks_delete_before_api(self, resources, control_plane, guard_settings) -> None:
        guard_settings.read_only = True
        with pytest.raises(GuardViolation):
            await resources.delete(version="v1", kind="ConfigMap", name="first")
        assert control_plane.calls == []

    async def test_eleventh_delete_rate_limited(self, resources, control_plane) -> None:
        for _ in range(10):
            await resources.delete(version="v1", kind="ConfigMap", name="first")
        with pytest.raises(GuardViolation) as excinfo:
            await resources.delete(version="v1", kind="ConfigMap", name="first")
        assert excinfo.value.kind is ViolationKind.RATE_LIMIT
        assert len(control_plane.calls_to("delete_resource")) == 10

    async def test_rate_limit_refills_with_clock(self, resources, clock) -> None:
        for _ in range(10):
            await resources.delete(version="v1", kind="ConfigMap", name="first")
        clock.advance(0.2)
        assert await resources.delete(version="v1", kind="ConfigMap", name="first") == {"status": "Success"}
