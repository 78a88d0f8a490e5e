"""Test models.py"""

import pytest

from factories import hacbs_output, make_build_run, make_snapshot, make_test_run
from integration_reconciler.exceptions import MissingImageError
from integration_reconciler.models import (
    PipelineRun,
    Snapshot,
    SnapshotComponent,
    strip_image_tag,
)


class TestSnapshot:
    """Test Snapshot"""

    def test_parse_from_object(self) -> None:
        """Test parsing a snapshot as returned by the cluster"""
        snapshot = Snapshot.model_validate(
            {
                "apiVersion": "appstudio.redhat.com/v1alpha1",
                "kind": "Snapshot",
                "metadata": {
                    "name": "app1-xyz",
                    "namespace": "ns",
                    "resourceVersion": "42",
                    "labels": {"component": "a"},
                },
                "spec": {
                    "application": "app1",
                    "components": [{"name": "a", "containerImage": "r/a@sha1"}],
                },
            }
        )
        assert snapshot.name == "app1-xyz"
        assert snapshot.metadata.resource_version == "42"
        assert snapshot.labels == {"component": "a"}
        assert snapshot.components == [
            SnapshotComponent(name="a", container_image="r/a@sha1")
        ]
        assert not snapshot.status.conditions

    def test_dump_uses_aliases(self) -> None:
        """Test dumping a snapshot back to the cluster representation"""
        snapshot = make_snapshot("s1", [("a", "r/a@sha1")])
        dumped = snapshot.model_dump(by_alias=True, exclude_none=True, mode="json")
        assert dumped["spec"]["components"] == [
            {"name": "a", "containerImage": "r/a@sha1"}
        ]
        assert "resourceVersion" not in dumped["metadata"]

    def test_content_hash_ignores_order(self) -> None:
        """Test the content hash of snapshots listing components in any order"""
        first = make_snapshot("s1", [("a", "r/a@sha1"), ("b", "r/b@sha2")])
        second = make_snapshot("s2", [("b", "r/b@sha2"), ("a", "r/a@sha1")])
        assert first.content_hash() == second.content_hash()

    def test_content_hash_differs_by_image(self) -> None:
        """Test the content hash of snapshots with different images"""
        first = make_snapshot("s1", [("a", "r/a@sha1"), ("b", "r/b@sha2")])
        second = make_snapshot("s1", [("a", "r/a@sha3"), ("b", "r/b@sha2")])
        assert first.content_hash() != second.content_hash()


@pytest.mark.parametrize(
    ("image_url", "expected"),
    [
        pytest.param("quay.io/org/repo:tag", "quay.io/org/repo", id="tag"),
        pytest.param("quay.io/org/repo", "quay.io/org/repo", id="no tag"),
        pytest.param(
            "localhost:5000/org/repo:tag", "localhost:5000/org/repo", id="port"
        ),
        pytest.param("quay.io/org/repo@sha256:abc", "quay.io/org/repo", id="digest"),
        pytest.param("repo:tag", "repo", id="bare repository"),
    ],
)
def test_strip_image_tag(image_url: str, expected: str) -> None:
    """Test strip_image_tag"""
    assert strip_image_tag(image_url) == expected


class TestPipelineRun:
    """Test PipelineRun"""

    def test_build_run(self) -> None:
        """Test the properties of a build pipeline run"""
        pipeline_run = make_build_run("build-1", "a")
        assert pipeline_run.is_build
        assert not pipeline_run.is_test
        assert pipeline_run.succeeded
        assert pipeline_run.output_image() == "quay.io/org/repo@sha256:abc"

    def test_output_image_missing(self) -> None:
        """Test a build pipeline run without image results"""
        pipeline_run = PipelineRun.model_validate(
            {"metadata": {"name": "build-1", "namespace": "ns"}}
        )
        with pytest.raises(MissingImageError):
            pipeline_run.output_image()

    def test_not_succeeded(self) -> None:
        """Test a failed test pipeline run"""
        pipeline_run = make_test_run("test-1", "s1", "snap", succeeded=False)
        assert pipeline_run.is_test
        assert not pipeline_run.succeeded

    def test_unknown_type(self) -> None:
        """Test a pipeline run without a type label"""
        pipeline_run = PipelineRun.model_validate(
            {"metadata": {"name": "other", "namespace": "ns"}}
        )
        assert pipeline_run.pipeline_type is None
        assert not pipeline_run.is_build
        assert not pipeline_run.is_test
        assert not pipeline_run.succeeded

    def test_iter_task_results(self) -> None:
        """Test task results are gathered from task runs and the flat result list"""
        pipeline_run = PipelineRun.model_validate(
            {
                "metadata": {"name": "test-1", "namespace": "ns"},
                "status": {
                    "taskRuns": {
                        "test-1-task1": {
                            "pipelineTaskName": "task1",
                            "status": {
                                "taskResults": [
                                    {"name": "HACBS_TEST_OUTPUT", "value": "{}"},
                                    {"name": "OTHER", "value": "x"},
                                ]
                            },
                        },
                        "test-1-task2": {"status": {}},
                    },
                    "taskResults": [{"name": "HACBS_TEST_OUTPUT", "value": "[]"}],
                },
            }
        )
        assert [
            (task, result.name, result.value)
            for task, result in pipeline_run.iter_task_results()
        ] == [
            ("task1", "HACBS_TEST_OUTPUT", "{}"),
            ("task1", "OTHER", "x"),
            ("test-1", "HACBS_TEST_OUTPUT", "[]"),
        ]

    def test_completion_time(self) -> None:
        """Test the completion time is parsed"""
        pipeline_run = make_test_run(
            "test-1", "s1", "snap", {"task": [hacbs_output("SUCCESS")]}, True, 30
        )
        assert pipeline_run.status.completion_time is not None
        assert pipeline_run.status.completion_time.minute == 30
