# ABOUTME: Unit tests for Helm release record decoding
# ABOUTME: Tests the base64 -> gzip -> JSON pipeline, shape checks, and the deployed filter

import base64
import gzip

import pytest

from chartwatch.codec import HelmRelease, ReleaseDecodeError, decode_release


@pytest.mark.unit
class TestDecodeRelease:
    """Tests for decode_release."""

    def test_decodes_chart_metadata_and_status(self, helm_payload):
        """Test that an encoded release decodes back to its chart and status."""
        payload = helm_payload(chart="myapp", version="1.0.0", status="deployed")

        release = decode_release(payload)

        assert release.chart_name == "myapp"
        assert release.chart_version == "1.0.0"
        assert release.status == "deployed"

    def test_decodes_release_fields(self, helm_payload):
        """Test release name, namespace and revision are extracted."""
        payload = helm_payload(
            chart="postgresql", release="orders-db", revision=7, namespace="orders"
        )

        release = decode_release(payload)

        assert release.name == "orders-db"
        assert release.namespace == "orders"
        assert release.revision == 7

    def test_accepts_bytes(self, helm_payload):
        """Test that the payload may be bytes as well as text."""
        payload = helm_payload(chart="nginx", version="15.4.0").encode("ascii")

        release = decode_release(payload)

        assert release.chart_name == "nginx"

    def test_status_case_preserved(self, helm_payload):
        """Test that the status string is returned as stored."""
        release = decode_release(helm_payload(status="DEPLOYED"))

        assert release.status == "DEPLOYED"

    def test_sparse_document_uses_empty_defaults(self, helm_payload):
        """Test that missing members decode to empty values."""
        release = decode_release(helm_payload(document={}))

        assert release == HelmRelease(
            name="",
            namespace="",
            revision=0,
            status="",
            chart_name="",
            chart_version="",
        )

    def test_null_members_use_defaults(self, helm_payload):
        """Test that JSON nulls behave like missing members."""
        release = decode_release(helm_payload(document={"chart": None, "info": None}))

        assert release.chart_name == ""
        assert release.status == ""

    def test_string_revision_falls_back_to_zero(self, helm_payload):
        """Test that a non-integer revision does not drop a deployed release."""
        document = {
            "version": "3",
            "chart": {"metadata": {"name": "a", "version": "1"}},
            "info": {"status": "deployed"},
        }

        release = decode_release(helm_payload(document=document))

        assert release.revision == 0
        assert release.chart_name == "a"
        assert release.chart_version == "1"
        assert release.is_deployed()

    def test_boolean_revision_falls_back_to_zero(self, helm_payload):
        """Test that a JSON boolean is not taken as a revision number."""
        release = decode_release(helm_payload(document={"version": True}))

        assert release.revision == 0

    def test_non_string_name_and_namespace_fall_back_to_empty(self, helm_payload):
        """Test that wrong-typed release name and namespace become empty strings."""
        document = {
            "name": 42,
            "namespace": ["apps"],
            "chart": {"metadata": {"name": "myapp", "version": "1.0.0"}},
            "info": {"status": "deployed"},
        }

        release = decode_release(helm_payload(document=document))

        assert release.name == ""
        assert release.namespace == ""
        assert release.chart_name == "myapp"


@pytest.mark.unit
class TestDecodeReleaseFailures:
    """Tests for each pipeline stage failing."""

    def test_invalid_base64(self):
        """Test that non-base64 text fails at the base64 stage."""
        with pytest.raises(ReleaseDecodeError) as exc_info:
            decode_release("not base64 at all!")

        assert exc_info.value.stage == "base64"

    def test_non_ascii_text(self):
        """Test that non-ASCII text fails at the base64 stage."""
        with pytest.raises(ReleaseDecodeError) as exc_info:
            decode_release("H4sI€")

        assert exc_info.value.stage == "base64"

    def test_not_gzip(self):
        """Test that valid base64 of non-gzip bytes fails at the gzip stage."""
        payload = base64.b64encode(b'{"chart": {}}').decode("ascii")

        with pytest.raises(ReleaseDecodeError) as exc_info:
            decode_release(payload)

        assert exc_info.value.stage == "gzip"

    def test_truncated_gzip(self):
        """Test that a truncated gzip stream fails at the gzip stage."""
        compressed = gzip.compress(b'{"chart": {"metadata": {"name": "x"}}}')
        payload = base64.b64encode(compressed[: len(compressed) // 2]).decode("ascii")

        with pytest.raises(ReleaseDecodeError) as exc_info:
            decode_release(payload)

        assert exc_info.value.stage == "gzip"

    def test_invalid_json(self):
        """Test that gzip of non-JSON fails at the json stage."""
        payload = base64.b64encode(gzip.compress(b"{not json")).decode("ascii")

        with pytest.raises(ReleaseDecodeError) as exc_info:
            decode_release(payload)

        assert exc_info.value.stage == "json"

    def test_json_not_an_object(self, helm_payload):
        """Test that a JSON array is rejected."""
        with pytest.raises(ReleaseDecodeError) as exc_info:
            decode_release(helm_payload(document=["deployed"]))

        assert exc_info.value.stage == "json"

    def test_chart_member_wrong_type(self, helm_payload):
        """Test that a string where the chart object belongs is rejected."""
        with pytest.raises(ReleaseDecodeError, match="chart"):
            decode_release(helm_payload(document={"chart": "myapp"}))

    def test_chart_name_wrong_type(self, helm_payload):
        """Test that a non-string chart name is rejected."""
        document = {"chart": {"metadata": {"name": 42, "version": "1.0.0"}}}

        with pytest.raises(ReleaseDecodeError, match="name"):
            decode_release(helm_payload(document=document))


@pytest.mark.unit
class TestReleaseDecodeError:
    """Tests for ReleaseDecodeError."""

    def test_str_includes_stage_and_reason(self):
        """Test the formatted message."""
        error = ReleaseDecodeError("gzip", "Not a gzipped file")

        assert str(error) == "Failed to decode release record (gzip): Not a gzipped file"

    def test_inherits_from_exception(self):
        """Test that ReleaseDecodeError can be caught as Exception."""
        with pytest.raises(Exception):
            raise ReleaseDecodeError("json", "bad")


@pytest.mark.unit
class TestIsDeployed:
    """Tests for the deployed status filter."""

    @pytest.mark.parametrize("status", ["deployed", "DEPLOYED", "Deployed", "dEpLoYeD"])
    def test_deployed_any_case(self, status):
        """Test that "deployed" matches case-insensitively."""
        release = HelmRelease("a", "ns", 1, status, "a", "1.0.0")

        assert release.is_deployed() is True

    @pytest.mark.parametrize(
        "status",
        ["superseded", "failed", "pending-upgrade", "pending-install", "uninstalling", ""],
    )
    def test_other_statuses_rejected(self, status):
        """Test that every other status is rejected."""
        release = HelmRelease("a", "ns", 1, status, "a", "1.0.0")

        assert release.is_deployed() is False
