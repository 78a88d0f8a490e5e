"""AppStudio and Tekton object models"""

import hashlib
from datetime import datetime
from typing import Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import MissingImageError
from .labels import (
    IMAGE_DIGEST_RESULT,
    IMAGE_URL_RESULT,
    PIPELINE_TYPE_BUILD,
    PIPELINE_TYPE_LABEL,
    PIPELINE_TYPE_TEST,
)

CONDITION_TRUE = "True"
CONDITION_FALSE = "False"


class FrozenModel(BaseModel):
    """immutable model accepting both field names and their aliases"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ObjectMeta(FrozenModel):
    """object metadata model"""

    name: str = ""
    namespace: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    resource_version: Optional[str] = Field(default=None, alias="resourceVersion")


class Condition(FrozenModel):
    """status condition model, keeping fields it does not declare"""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    type: str
    status: str
    reason: str = ""
    message: str = ""
    last_transition_time: Optional[datetime] = Field(
        default=None, alias="lastTransitionTime"
    )


class KubeObject(FrozenModel):
    """base model for objects kept in the object store"""

    metadata: ObjectMeta

    @property
    def name(self) -> str:
        """object name"""
        return self.metadata.name

    @property
    def namespace(self) -> str:
        """object namespace"""
        return self.metadata.namespace

    @property
    def labels(self) -> dict[str, str]:
        """object labels"""
        return self.metadata.labels


class Application(KubeObject):
    """application model"""


class ComponentSpec(FrozenModel):
    """component spec model"""

    application: str


class ComponentStatus(FrozenModel):
    """component status model"""

    container_image: str = Field(default="", alias="containerImage")


class Component(KubeObject):
    """component model"""

    spec: ComponentSpec
    status: ComponentStatus = Field(default_factory=ComponentStatus)


class SnapshotComponent(FrozenModel):
    """snapshot component model"""

    name: str
    container_image: str = Field(alias="containerImage")


class SnapshotSpec(FrozenModel):
    """snapshot spec model"""

    application: str
    components: list[SnapshotComponent]


class SnapshotStatus(FrozenModel):
    """snapshot status model"""

    conditions: list[Condition] = Field(default_factory=list)


class Snapshot(KubeObject):
    """snapshot model"""

    spec: SnapshotSpec
    status: SnapshotStatus = Field(default_factory=SnapshotStatus)

    @property
    def components(self) -> list[SnapshotComponent]:
        """snapshot components"""
        return self.spec.components

    def component_set(self) -> frozenset[tuple[str, str]]:
        """The unordered (name, image) pairs of the snapshot"""
        return frozenset(
            (component.name, component.container_image)
            for component in self.spec.components
        )

    def content_hash(self) -> str:
        """
        Hash the snapshot image combination.
        Two snapshots with the same components in any order share a hash.
        :return: hex digest of the sorted (name, image) pairs
        """
        digest = hashlib.sha256()
        for name, image in sorted(self.component_set()):
            digest.update(f"{name}={image}\n".encode())
        return digest.hexdigest()


class IntegrationTestScenarioSpec(FrozenModel):
    """integration test scenario spec model"""

    application: str
    pipeline: str = ""
    bundle: str = ""


class IntegrationTestScenario(KubeObject):
    """integration test scenario model"""

    spec: IntegrationTestScenarioSpec


class TaskRunResult(FrozenModel):
    """named result produced by a task"""

    name: str
    value: str


class TaskRunStatus(FrozenModel):
    """task run status model"""

    task_results: list[TaskRunResult] = Field(
        default_factory=list, alias="taskResults"
    )


class PipelineRunTaskRunStatus(FrozenModel):
    """status of a task run belonging to a pipeline run"""

    pipeline_task_name: str = Field(default="", alias="pipelineTaskName")
    status: TaskRunStatus = Field(default_factory=TaskRunStatus)


class PipelineRunResult(FrozenModel):
    """named result produced by a pipeline run"""

    name: str
    value: str


class PipelineRunStatus(FrozenModel):
    """pipeline run status model"""

    conditions: list[Condition] = Field(default_factory=list)
    completion_time: Optional[datetime] = Field(default=None, alias="completionTime")
    task_runs: dict[str, PipelineRunTaskRunStatus] = Field(
        default_factory=dict, alias="taskRuns"
    )
    task_results: list[TaskRunResult] = Field(
        default_factory=list, alias="taskResults"
    )
    pipeline_results: list[PipelineRunResult] = Field(
        default_factory=list, alias="pipelineResults"
    )


def strip_image_tag(image_url: str) -> str:
    """
    Remove the tag and digest from an image reference
    :param image_url: image reference, e.g. quay.io/org/repo:tag
    :return: the image repository, e.g. quay.io/org/repo
    """
    path, sep, repo = image_url.split("@")[0].rpartition("/")
    return f"{path}{sep}{repo.split(':')[0]}"


class PipelineRun(KubeObject):
    """pipeline run model"""

    status: PipelineRunStatus = Field(default_factory=PipelineRunStatus)

    @property
    def pipeline_type(self) -> Optional[str]:
        """The pipeline type label value"""
        return self.labels.get(PIPELINE_TYPE_LABEL)

    @property
    def is_build(self) -> bool:
        """Whether this is a build pipeline run"""
        return self.pipeline_type == PIPELINE_TYPE_BUILD

    @property
    def is_test(self) -> bool:
        """Whether this is an integration test pipeline run"""
        return self.pipeline_type == PIPELINE_TYPE_TEST

    @property
    def succeeded(self) -> bool:
        """Whether the Succeeded condition of the pipeline run is true"""
        return any(
            condition.type == "Succeeded" and condition.status == CONDITION_TRUE
            for condition in self.status.conditions
        )

    def iter_task_results(self) -> Iterator[tuple[str, TaskRunResult]]:
        """
        Iterate over the results of all tasks in the pipeline run
        :return: (task name, result) pairs
        """
        for task_run_name, task_run in self.status.task_runs.items():
            task_name = task_run.pipeline_task_name or task_run_name
            for result in task_run.status.task_results:
                yield task_name, result
        for result in self.status.task_results:
            yield self.name, result

    def output_image(self) -> str:
        """
        Compose the pull spec of the image built by the pipeline run
        :return: image repository pinned to the built digest
        :raises MissingImageError: if the image url or digest result is missing
        """
        results = {result.name: result.value for result in self.status.pipeline_results}
        image_url = results.get(IMAGE_URL_RESULT)
        image_digest = results.get(IMAGE_DIGEST_RESULT)
        if not image_url or not image_digest:
            raise MissingImageError(
                f"PipelineRun {self.name} has no {IMAGE_URL_RESULT} "
                f"and {IMAGE_DIGEST_RESULT} results"
            )
        return f"{strip_image_tag(image_url)}@{image_digest}"
