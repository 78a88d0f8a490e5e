"""Aggregate integration test pipeline runs into a snapshot verdict"""

import json
import logging
from dataclasses import dataclass
from typing import Optional

from .conditions import set_status_condition
from .exceptions import AggregationError
from .labels import (
    OPTIONAL_LABEL,
    PIPELINE_TYPE_LABEL,
    PIPELINE_TYPE_TEST,
    SCENARIO_LABEL,
    SNAPSHOT_LABEL,
    TEST_OUTPUT_RESULT,
    TEST_SUCCEEDED_CONDITION,
)
from .models import (
    CONDITION_FALSE,
    CONDITION_TRUE,
    Application,
    Condition,
    IntegrationTestScenario,
    PipelineRun,
    Snapshot,
)
from .store import (
    INTEGRATION_TEST_SCENARIO,
    PIPELINE_RUN,
    SNAPSHOT,
    ObjectStore,
    Query,
)

LOG = logging.getLogger(__name__)

PASSING_RESULTS = frozenset({"SUCCESS", "SKIPPED"})


@dataclass(frozen=True)
class Verdict:
    """
    Aggregated outcome of all required integration tests of a snapshot

    :param passed: whether all required tests passed
    :param message: human readable summary
    """

    passed: bool
    message: str

    @property
    def reason(self) -> str:
        """condition reason for the verdict"""
        return "Passed" if self.passed else "Failed"

    def to_condition(self) -> Condition:
        """The snapshot condition recording the verdict"""
        return Condition(
            type=TEST_SUCCEEDED_CONDITION,
            status=CONDITION_TRUE if self.passed else CONDITION_FALSE,
            reason=self.reason,
            message=self.message,
        )


def is_required_scenario(scenario: IntegrationTestScenario) -> bool:
    """
    Whether a scenario must pass for a snapshot to pass.
    A scenario is required unless its optional label is exactly "false",
    so a scenario labeled optional=true is required as well.
    """
    return scenario.labels.get(OPTIONAL_LABEL) != "false"


def get_required_scenarios(
    store: ObjectStore, application: Application
) -> list[IntegrationTestScenario]:
    """Get the integration test scenarios required for an application"""
    return store.list(
        Query(
            kind=INTEGRATION_TEST_SCENARIO,
            namespace=application.namespace,
            fields={"spec.application": application.name},
            predicate=is_required_scenario,
        )
    )


def get_latest_succeeded_run(
    store: ObjectStore, snapshot: Snapshot, scenario: IntegrationTestScenario
) -> Optional[PipelineRun]:
    """
    Get the latest succeeded integration pipeline run of a scenario for a snapshot
    :return: the run with the latest completion time, or None if no run succeeded
    """
    pipeline_runs = store.list(
        Query(
            kind=PIPELINE_RUN,
            namespace=snapshot.namespace,
            labels={
                PIPELINE_TYPE_LABEL: PIPELINE_TYPE_TEST,
                SNAPSHOT_LABEL: snapshot.name,
                SCENARIO_LABEL: scenario.name,
            },
        )
    )
    latest: Optional[PipelineRun] = None
    for pipeline_run in pipeline_runs:
        if not pipeline_run.succeeded:
            continue
        if latest is None or _completed_after(pipeline_run, latest):
            latest = pipeline_run
    return latest


def _completed_after(pipeline_run: PipelineRun, other: PipelineRun) -> bool:
    if pipeline_run.status.completion_time is None:
        return False
    if other.status.completion_time is None:
        return True
    return pipeline_run.status.completion_time > other.status.completion_time


def resolve_pipeline_runs(
    store: ObjectStore,
    snapshot: Snapshot,
    scenarios: list[IntegrationTestScenario],
    triggering_run: PipelineRun,
) -> list[PipelineRun]:
    """
    Resolve a pipeline run for each scenario.
    The triggering run is used as is for its own scenario; scenarios without a
    succeeded run are left out.
    """
    pipeline_runs: list[PipelineRun] = []
    for scenario in scenarios:
        if triggering_run.labels.get(SCENARIO_LABEL) == scenario.name:
            LOG.info(
                "PipelineRun %s matches integration test scenario %s",
                triggering_run.name,
                scenario.name,
            )
            pipeline_runs.append(triggering_run)
            continue
        pipeline_run = get_latest_succeeded_run(store, snapshot, scenario)
        if pipeline_run is not None:
            LOG.info(
                "Found PipelineRun %s for integration test scenario %s",
                pipeline_run.name,
                scenario.name,
            )
            pipeline_runs.append(pipeline_run)
    return pipeline_runs


def calculate_pipeline_run_outcome(pipeline_run: PipelineRun) -> bool:
    """
    Check the test output results of all tasks of a pipeline run.
    A run without any test output results passes.
    :return: False if any test output result is neither SUCCESS nor SKIPPED
    :raises AggregationError: if a test output result is not a JSON object
    """
    for task_name, task_result in pipeline_run.iter_task_results():
        if task_result.name != TEST_OUTPUT_RESULT:
            continue
        try:
            test_output = json.loads(task_result.value)
        except json.JSONDecodeError as ex:
            raise AggregationError(
                f"Invalid {TEST_OUTPUT_RESULT} of task {task_name} "
                f"in PipelineRun {pipeline_run.name}: {ex}"
            ) from ex
        if not isinstance(test_output, dict):
            raise AggregationError(
                f"{TEST_OUTPUT_RESULT} of task {task_name} "
                f"in PipelineRun {pipeline_run.name} is not an object"
            )
        LOG.info(
            "Task %s of PipelineRun %s has test result %s",
            task_name,
            pipeline_run.name,
            test_output.get("result"),
        )
        if test_output.get("result") not in PASSING_RESULTS:
            return False
    return True


def aggregate(
    store: ObjectStore,
    application: Application,
    snapshot: Snapshot,
    triggering_run: PipelineRun,
) -> Optional[Verdict]:
    """
    Compute the verdict of a snapshot from the pipeline runs of all required
    integration test scenarios.
    :return: the verdict, or None if not all required scenarios have a
        succeeded pipeline run yet
    """
    scenarios = get_required_scenarios(store, application)
    pipeline_runs = resolve_pipeline_runs(store, snapshot, scenarios, triggering_run)
    if len(pipeline_runs) != len(scenarios):
        LOG.info(
            "Snapshot %s has %d of %d required integration PipelineRuns",
            snapshot.name,
            len(pipeline_runs),
            len(scenarios),
        )
        return None

    failed = [
        pipeline_run.name
        for pipeline_run in pipeline_runs
        if not calculate_pipeline_run_outcome(pipeline_run)
    ]
    if failed:
        LOG.info("Integration PipelineRuns did not pass: %s", ", ".join(failed))
        return Verdict(passed=False, message="Some Integration pipeline tests failed")
    return Verdict(passed=True, message="All Integration Pipeline tests passed")


def mark_snapshot(store: ObjectStore, snapshot: Snapshot, verdict: Verdict) -> Snapshot:
    """
    Record the verdict on the snapshot status.
    Nothing is written if the snapshot already carries the same verdict.
    :return: the updated snapshot
    """
    conditions, changed = set_status_condition(
        snapshot.status.conditions, verdict.to_condition()
    )
    if not changed:
        return snapshot
    updated = snapshot.model_copy(
        update={"status": snapshot.status.model_copy(update={"conditions": conditions})}
    )
    return store.patch_status(SNAPSHOT, updated)
