"""Tests for service manifest parsing and environment hydration."""

import pytest

from components.common.constants import ComplianceFramework
from components.common.exceptions import ManifestError
from components.common.manifest import ManifestHydrator, load_manifest, parse_manifest


def _raw_manifest(**overrides):
    raw = {
        "service": "orders",
        "owner": "team-orders",
        "complianceFramework": "fedramp-moderate",
        "labels": {"team": "orders"},
        "environments": {
            "dev": {"defaults": {"workers": 2, "bucket": "orders-dev", "retention": {"days": 7}}},
            "prod": {"defaults": {"workers": 10, "bucket": "orders-prod", "retention": {"days": 90}}},
        },
        "components": [
            {"name": "events", "type": "sqs-queue", "config": {"visibilityTimeoutSeconds": 60}},
            {
                "name": "export",
                "type": "glue-job",
                "config": {"numberOfWorkers": "${env:workers}"},
                "binds": [{"to": "events", "capability": "queue:sqs", "access": "read"}],
            },
        ],
    }
    raw.update(overrides)
    return raw


class TestParseManifest:
    """Test validation of the manifest structure."""

    def test_parses_service_fields(self):
        manifest = parse_manifest(_raw_manifest(), "dev")

        assert manifest.service == "orders"
        assert manifest.owner == "team-orders"
        assert manifest.compliance_framework is ComplianceFramework.FEDRAMP_MODERATE
        assert [component.name for component in manifest.components] == ["events", "export"]
        assert manifest.get_component("export").binds[0].capability == "queue:sqs"
        assert manifest.get_component("missing") is None

    def test_framework_defaults_to_commercial(self):
        raw = _raw_manifest()
        del raw["complianceFramework"]

        assert parse_manifest(raw, "dev").compliance_framework is ComplianceFramework.COMMERCIAL

    def test_unknown_framework_is_rejected(self):
        with pytest.raises(ManifestError) as excinfo:
            parse_manifest(_raw_manifest(complianceFramework="pci"), "dev")

        assert "Unsupported compliance framework 'pci'" in excinfo.value.message

    def test_duplicate_component_names_are_rejected(self):
        raw = _raw_manifest(components=[
            {"name": "events", "type": "sqs-queue"},
            {"name": "events", "type": "dynamodb-table"},
        ])

        with pytest.raises(ManifestError, match="Duplicate component names: events"):
            parse_manifest(raw, "dev")

    def test_binding_to_unknown_component_is_rejected(self):
        raw = _raw_manifest(components=[
            {"name": "export", "type": "glue-job", "binds": [{"to": "nowhere", "capability": "queue:sqs"}]},
        ])

        with pytest.raises(ManifestError, match="binds to unknown component 'nowhere'"):
            parse_manifest(raw, "dev")

    def test_binding_to_itself_is_rejected(self):
        raw = _raw_manifest(components=[
            {"name": "export", "type": "glue-job", "binds": [{"to": "export", "capability": "job:glue"}]},
        ])

        with pytest.raises(ManifestError, match="cannot bind to itself"):
            parse_manifest(raw, "dev")

    def test_unknown_manifest_keys_are_rejected(self):
        with pytest.raises(ManifestError, match="regions"):
            parse_manifest(_raw_manifest(regions=["us-east-1"]), "dev")

    def test_to_context_carries_service_metadata(self):
        manifest = parse_manifest(_raw_manifest(costCenter="cc-42"), "prod")

        context = manifest.to_context("prod", region="us-east-1", platform_config=object())

        assert context.service_name == "orders"
        assert context.environment == "prod"
        assert context.is_production
        assert context.is_fedramp
        assert context.cost_center == "cc-42"
        assert context.service_labels == {"team": "orders"}


class TestEnvironmentHydration:
    """Test environment references and selectors."""

    def test_whole_string_reference_keeps_type(self):
        dev = parse_manifest(_raw_manifest(), "dev")
        prod = parse_manifest(_raw_manifest(), "prod")

        assert dev.get_component("export").config["numberOfWorkers"] == 2
        assert prod.get_component("export").config["numberOfWorkers"] == 10

    def test_embedded_reference_is_interpolated(self):
        hydrator = ManifestHydrator("prod", {"bucket": "orders-prod"}, ["dev", "prod"])

        assert hydrator.hydrate("s3://${env:bucket}/scripts/export.py") == "s3://orders-prod/scripts/export.py"

    def test_dotted_reference_walks_nested_defaults(self):
        hydrator = ManifestHydrator("dev", {"retention": {"days": 7}}, ["dev"])

        assert hydrator.hydrate({"retentionDays": "${env:retention.days}"}) == {"retentionDays": 7}

    def test_env_is_reference(self):
        hydrator = ManifestHydrator("prod", {}, ["dev", "prod"])

        assert hydrator.hydrate("${envIs:prod}") is True
        assert hydrator.hydrate("${envIs:dev}") is False
        assert hydrator.hydrate("prod=${envIs:prod}") == "prod=true"

    def test_explicit_selector(self):
        hydrator = ManifestHydrator("staging", {}, ["dev", "prod"])

        assert hydrator.hydrate({"$env": {"dev": 1, "prod": 3, "default": 2}}) == 2

    def test_implicit_selector_uses_declared_environments(self):
        hydrator = ManifestHydrator("prod", {}, ["dev", "prod"])

        assert hydrator.hydrate({"nodeType": {"dev": "cache.t3.micro", "prod": "cache.r6g.large"}}) == {
            "nodeType": "cache.r6g.large"
        }

    def test_mapping_with_other_keys_is_not_a_selector(self):
        hydrator = ManifestHydrator("prod", {}, ["dev", "prod"])

        assert hydrator.hydrate({"dev": 1, "team": "orders"}) == {"dev": 1, "team": "orders"}

    def test_selector_values_are_hydrated(self):
        hydrator = ManifestHydrator("prod", {"workers": 10}, ["dev", "prod"])

        assert hydrator.hydrate({"$env": {"prod": "${env:workers}", "default": 1}}) == 10

    def test_lists_are_hydrated(self):
        hydrator = ManifestHydrator("dev", {"bucket": "orders-dev"}, ["dev"])

        assert hydrator.hydrate(["${env:bucket}", 3]) == ["orders-dev", 3]

    def test_missing_reference_names_the_path(self):
        raw = _raw_manifest()
        raw["components"][1]["config"]["timeoutMinutes"] = "${env:timeout}"

        with pytest.raises(ManifestError) as excinfo:
            parse_manifest(raw, "dev")

        assert "components.1.config.timeoutMinutes" in excinfo.value.message
        assert "${env:timeout}" in excinfo.value.message

    def test_selector_without_match_or_default(self):
        hydrator = ManifestHydrator("staging", {}, ["dev", "prod"])

        with pytest.raises(ManifestError, match="no value for environment 'staging'"):
            hydrator.hydrate({"$env": {"dev": 1, "prod": 3}}, "config.size")

    def test_undeclared_environment_has_no_defaults(self):
        with pytest.raises(ManifestError, match="environments.qa.defaults"):
            parse_manifest(_raw_manifest(), "qa")


class TestLoadManifest:
    """Test loading manifests from disk."""

    def test_loads_yaml_file(self, tmp_path):
        path = tmp_path / "service.yml"
        path.write_text(
            "service: billing\n"
            "environments:\n"
            "  dev:\n"
            "    defaults:\n"
            "      depth: 5\n"
            "components:\n"
            "  - name: invoices\n"
            "    type: sqs-queue\n"
            "    config:\n"
            "      delaySeconds: ${env:depth}\n",
            encoding="utf-8"
        )

        manifest = load_manifest(path, "dev")

        assert manifest.service == "billing"
        assert manifest.get_component("invoices").config == {"delaySeconds": 5}

    def test_errors_carry_the_file_path(self, tmp_path):
        path = tmp_path / "service.yml"
        path.write_text("components: []\n", encoding="utf-8")

        with pytest.raises(ManifestError) as excinfo:
            load_manifest(path, "dev")

        assert excinfo.value.path == str(path)
        assert "service" in excinfo.value.message

    def test_missing_file(self, tmp_path):
        with pytest.raises(ManifestError, match="Unable to read"):
            load_manifest(tmp_path / "absent.yml", "dev")

    def test_example_manifest_hydrates_for_each_environment(self):
        from pathlib import Path

        example = Path(__file__).resolve().parent.parent / "manifests" / "orders-service.yml"

        dev = load_manifest(example, "dev")
        prod = load_manifest(example, "prod")

        assert dev.service == prod.service
        assert dev.get_component("order-events").config != prod.get_component("order-events").config
