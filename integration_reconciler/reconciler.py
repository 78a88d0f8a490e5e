#!/usr/bin/env python3

"""Reconcile a completed PipelineRun"""

import logging
import signal
import sys
import threading
from pathlib import Path
from types import ModuleType
from typing import Any, Optional

import click
import yaml
from kubernetes import client, config  # type: ignore

from .exceptions import ReconcilerError
from .kube_store import KubernetesStore
from .models import PipelineRun
from .pipeline_adapter import reconcile
from .store import PIPELINE_RUN, ObjectStore

LOG = logging.getLogger(__name__)


def load_config(conf: ModuleType) -> None:
    """Load configs from cluster or pod"""
    try:
        conf.load_incluster_config()
    except conf.ConfigException:
        conf.load_kube_config()


def load_pipeline_run_manifest(manifest_path: Path) -> PipelineRun:
    """
    Load a PipelineRun from a YAML or JSON manifest file
    :param manifest_path: path to the manifest
    :return: the parsed PipelineRun
    """
    try:
        raw: dict[str, Any] = yaml.safe_load(manifest_path.read_text(encoding="utf-8"))
    except FileNotFoundError as ex:
        raise FileNotFoundError(
            f"Could not find PipelineRun manifest at {manifest_path.resolve()}"
        ) from ex
    return PipelineRun.model_validate(raw)


def get_pipeline_run(
    store: ObjectStore,
    namespace: Optional[str],
    name: Optional[str],
    manifest_path: Optional[Path],
) -> PipelineRun:
    """Get the PipelineRun to reconcile from a manifest or from the cluster"""
    if manifest_path is not None:
        return load_pipeline_run_manifest(manifest_path)
    if not namespace or not name:
        raise click.UsageError(
            "Either --manifest or both --namespace and --pipelinerun are required"
        )
    return store.get(PIPELINE_RUN, namespace, name)


@click.command()
@click.option(
    "--namespace",
    help="Namespace of the PipelineRun",
    type=str,
    envvar="NAMESPACE",
)
@click.option(
    "--pipelinerun",
    "pipeline_run_name",
    help="Name of the completed PipelineRun to fetch from the cluster",
    type=str,
)
@click.option(
    "--manifest",
    "manifest_path",
    help="Path to a completed PipelineRun manifest (YAML or JSON)",
    type=click.Path(path_type=Path),
)
@click.option(
    "--request-timeout",
    help="Timeout in seconds for each request to the cluster",
    type=float,
    default=30.0,
    envvar="REQUEST_TIMEOUT",
)
@click.option(
    "--log-level",
    help="Logging level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    envvar="LOG_LEVEL",
)
def main(  # pylint: disable=too-many-arguments
    namespace: Optional[str],
    pipeline_run_name: Optional[str],
    manifest_path: Optional[Path],
    request_timeout: float,
    log_level: str,
) -> None:
    """Create or test snapshots for a completed PipelineRun"""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_config(config)

    cancel_event = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: cancel_event.set())
    store = KubernetesStore(
        api=client.CustomObjectsApi(),
        request_timeout=request_timeout,
        cancel_event=cancel_event,
    )

    try:
        pipeline_run = get_pipeline_run(
            store, namespace, pipeline_run_name, manifest_path
        )
    except ReconcilerError as ex:
        sys.exit(f"Cannot get PipelineRun {pipeline_run_name}: {ex}")
    result = reconcile(store, pipeline_run)
    if result.should_retry:
        sys.exit(f"Reconciling PipelineRun {pipeline_run.name} failed: {result.error}")
    LOG.info("Reconciled PipelineRun %s: %s", pipeline_run.name, result.action.value)


if __name__ == "__main__":
    main()  # pylint: disable=no-value-for-parameter
