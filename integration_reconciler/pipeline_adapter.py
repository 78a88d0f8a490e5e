"""Reconcile a completed PipelineRun against snapshots"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .conditions import set_status_condition
from .exceptions import (
    AggregationError,
    MissingComponentError,
    MissingImageError,
    MissingSnapshotError,
    NotFoundError,
    ReconcilerError,
    TransientError,
)
from .labels import (
    APPLICATION_LABEL,
    COMPONENT_LABEL,
    RECONCILED_CONDITION,
    SNAPSHOT_LABEL,
)
from .models import (
    CONDITION_FALSE,
    Application,
    Component,
    Condition,
    PipelineRun,
    Snapshot,
)
from .outcome_aggregator import aggregate, mark_snapshot
from .results import (
    OperationResult,
    continue_processing,
    retry_or_stop,
    retry_with_error,
)
from .snapshot_matcher import (
    create_snapshot,
    find_matching_snapshot,
    get_application_components,
    prepare_snapshot,
)
from .store import APPLICATION, COMPONENT, PIPELINE_RUN, SNAPSHOT, ObjectStore

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineAdapter:
    """
    Holds the objects needed to reconcile a completed PipelineRun.
    Each operation returns an OperationResult telling the caller whether to
    go on, retry the event or stop.

    :param pipeline_run: the completed pipeline run
    :param component: the component built by the pipeline run, if any
    :param application: the application the pipeline run belongs to
    :param store: the object store
    """

    pipeline_run: PipelineRun
    component: Optional[Component]
    application: Application
    store: ObjectStore

    def ensure_snapshot_exists(self) -> OperationResult:
        """
        Ensure a snapshot with the image built by a build PipelineRun exists,
        creating a new snapshot if no existing one has the same images.
        """
        if not self.pipeline_run.is_build:
            return continue_processing()

        try:
            if self.component is None:
                raise MissingComponentError(
                    f"PipelineRun {self.pipeline_run.name} has no component"
                )
            expected = prepare_snapshot(
                self.application,
                get_application_components(self.store, self.application),
                self.component,
                self.pipeline_run.output_image(),
            )
            existing = find_matching_snapshot(self.store, self.application, expected)
        except TransientError as ex:
            return retry_with_error(ex)
        except (MissingComponentError, MissingImageError) as ex:
            LOG.error("Cannot prepare Snapshot: %s", ex)
            return self.record_failure(type(ex).__name__.removesuffix("Error"), ex)

        if existing is not None:
            LOG.info(
                "Found existing Snapshot %s for Application %s: %s",
                existing.name,
                self.application.name,
                existing.components,
            )
            return continue_processing()

        try:
            snapshot = create_snapshot(self.store, expected)
        except ReconcilerError as ex:
            LOG.error(
                "Failed to create Snapshot for Application %s/%s: %s",
                self.application.namespace,
                self.application.name,
                ex,
            )
            return self.record_failure("SnapshotCreationFailed", ex)

        LOG.info(
            "Created new Snapshot %s for Application %s: %s",
            snapshot.name,
            self.application.name,
            snapshot.components,
        )
        return continue_processing()

    def ensure_snapshot_passed_all_tests(self) -> OperationResult:
        """
        Once all required integration PipelineRuns of the snapshot tested by a
        test PipelineRun succeeded, mark the snapshot as passed or failed.
        """
        if not self.pipeline_run.is_test:
            return continue_processing()

        try:
            snapshot = self.get_snapshot()
        except TransientError as ex:
            return retry_with_error(ex)
        except MissingSnapshotError as ex:
            LOG.error("Cannot find Snapshot: %s", ex)
            return self.record_failure("MissingSnapshot", ex)
        LOG.info(
            "Found existing Snapshot %s for Application %s: %s",
            snapshot.name,
            self.application.name,
            snapshot.components,
        )

        try:
            verdict = aggregate(
                self.store, self.application, snapshot, self.pipeline_run
            )
        except TransientError as ex:
            return retry_with_error(ex)
        except AggregationError as ex:
            LOG.error(
                "Failed to determine outcomes for Snapshot %s: %s", snapshot.name, ex
            )
            return self.record_failure("InvalidTestOutput", ex)

        if verdict is None:
            LOG.info(
                "Not all required integration PipelineRuns finished for Snapshot %s",
                snapshot.name,
            )
            return continue_processing()

        try:
            mark_snapshot(self.store, snapshot, verdict)
        except TransientError as ex:
            LOG.error(
                "Failed to update %s status of Snapshot %s: %s",
                verdict.to_condition().type,
                snapshot.name,
                ex,
            )
            return retry_with_error(ex)
        LOG.info(
            "Marked Snapshot %s of Application %s as %s",
            snapshot.name,
            self.application.name,
            verdict.reason,
        )
        return continue_processing()

    def get_snapshot(self) -> Snapshot:
        """
        Get the snapshot tested by the pipeline run
        :raises MissingSnapshotError: if the pipeline run has no snapshot label
        """
        snapshot_name = self.pipeline_run.labels.get(SNAPSHOT_LABEL)
        if not snapshot_name:
            raise MissingSnapshotError(
                f"PipelineRun {self.pipeline_run.name} "
                "has no snapshot associated with it"
            )
        return self.store.get(SNAPSHOT, self.pipeline_run.namespace, snapshot_name)

    def record_failure(self, reason: str, error: Exception) -> OperationResult:
        """
        Record a failure on the pipeline run status and stop processing it,
        unless recording the failure fails too.
        """
        conditions, changed = set_status_condition(
            self.pipeline_run.status.conditions,
            Condition(
                type=RECONCILED_CONDITION,
                status=CONDITION_FALSE,
                reason=reason,
                message=str(error),
            ),
        )
        if not changed:
            return retry_or_stop(None)
        updated = self.pipeline_run.model_copy(
            update={
                "status": self.pipeline_run.status.model_copy(
                    update={"conditions": conditions}
                )
            }
        )
        try:
            self.store.patch_status(PIPELINE_RUN, updated)
        except TransientError as ex:
            LOG.error(
                "Failed to update status of PipelineRun %s: %s",
                self.pipeline_run.name,
                ex,
            )
            return retry_or_stop(ex)
        return retry_or_stop(None)

    def operations(self) -> list[Callable[[], OperationResult]]:
        """The operations to run, in order"""
        return [self.ensure_snapshot_exists, self.ensure_snapshot_passed_all_tests]


def new_adapter(
    store: ObjectStore, pipeline_run: PipelineRun
) -> Optional[PipelineAdapter]:
    """
    Load the application and component a pipeline run refers to
    :return: an adapter, or None if the pipeline run is not ours or its
        application no longer exists
    :raises TransientError: if loading failed
    """
    if not (pipeline_run.is_build or pipeline_run.is_test):
        return None
    application_name = pipeline_run.labels.get(APPLICATION_LABEL)
    if not application_name:
        LOG.info("PipelineRun %s has no application label", pipeline_run.name)
        return None

    namespace = pipeline_run.namespace
    try:
        application = store.get(APPLICATION, namespace, application_name)
    except NotFoundError:
        LOG.info(
            "Application %s of PipelineRun %s not found",
            application_name,
            pipeline_run.name,
        )
        return None

    component: Optional[Component] = None
    component_name = pipeline_run.labels.get(COMPONENT_LABEL)
    if component_name:
        try:
            component = store.get(COMPONENT, namespace, component_name)
        except NotFoundError:
            LOG.info(
                "Component %s of PipelineRun %s not found",
                component_name,
                pipeline_run.name,
            )
    return PipelineAdapter(
        pipeline_run=pipeline_run,
        component=component,
        application=application,
        store=store,
    )


def reconcile(store: ObjectStore, pipeline_run: PipelineRun) -> OperationResult:
    """
    Run all operations for a completed pipeline run, stopping at the first
    operation that asks to retry or stop.
    """
    try:
        adapter = new_adapter(store, pipeline_run)
    except TransientError as ex:
        return retry_with_error(ex)
    if adapter is None:
        return continue_processing()

    for operation in adapter.operations():
        result = operation()
        if result.should_stop:
            return result
    return continue_processing()
