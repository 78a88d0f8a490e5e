"""Find or create the snapshot implied by a build pipeline run"""

import logging
from typing import Optional

from .exceptions import ConflictError
from .labels import SNAPSHOT_COMPONENT_LABEL
from .models import (
    Application,
    Component,
    ObjectMeta,
    Snapshot,
    SnapshotComponent,
    SnapshotSpec,
)
from .store import COMPONENT, SNAPSHOT, ObjectStore, Query

LOG = logging.getLogger(__name__)

NAME_HASH_LENGTH = 12


def get_application_components(
    store: ObjectStore, application: Application
) -> list[Component]:
    """Get all components belonging to an application"""
    return store.list(
        Query(
            kind=COMPONENT,
            namespace=application.namespace,
            fields={"spec.application": application.name},
        )
    )


def get_application_snapshots(
    store: ObjectStore, application: Application
) -> list[Snapshot]:
    """Get all snapshots belonging to an application"""
    return store.list(
        Query(
            kind=SNAPSHOT,
            namespace=application.namespace,
            fields={"spec.application": application.name},
        )
    )


def snapshot_name(application: Application, snapshot: Snapshot) -> str:
    """
    Derive the name of a snapshot from its image combination, so that
    concurrently created snapshots of the same combination collide by name
    """
    return f"{application.name}-{snapshot.content_hash()[:NAME_HASH_LENGTH]}"


def prepare_snapshot(
    application: Application,
    application_components: list[Component],
    component: Component,
    image: str,
) -> Snapshot:
    """
    Prepare the snapshot a newly built image for a component implies
    :param application: the application of the component
    :param application_components: all the components of the application
    :param component: the component that was built
    :param image: the pull spec of the newly built image
    :return: snapshot of the current application images with the new image
    """
    components = [
        SnapshotComponent(
            name=app_component.name,
            container_image=(
                image
                if app_component.name == component.name
                else app_component.status.container_image
            ),
        )
        for app_component in application_components
    ]
    snapshot = Snapshot(
        metadata=ObjectMeta(
            namespace=application.namespace,
            labels={SNAPSHOT_COMPONENT_LABEL: component.name},
        ),
        spec=SnapshotSpec(application=application.name, components=components),
    )
    return snapshot.model_copy(
        update={
            "metadata": snapshot.metadata.model_copy(
                update={"name": snapshot_name(application, snapshot)}
            )
        }
    )


def snapshots_match(expected: Snapshot, found: Snapshot) -> bool:
    """
    Compare the images of two snapshots regardless of the components order
    :return: True if both snapshots have the same number of components and the
        same (name, image) pairs
    """
    return (
        len(expected.components) == len(found.components)
        and expected.component_set() == found.component_set()
    )


def find_matching_snapshot(
    store: ObjectStore, application: Application, expected: Snapshot
) -> Optional[Snapshot]:
    """Find an existing snapshot of the application with the expected images"""
    for snapshot in get_application_snapshots(store, application):
        if snapshots_match(expected, snapshot):
            return snapshot
    return None


def create_snapshot(store: ObjectStore, snapshot: Snapshot) -> Snapshot:
    """
    Create a snapshot unless one with the same name already exists.
    Since snapshot names are derived from their images, an existing
    snapshot with the same name is returned in place of the new one.
    """
    try:
        return store.create(SNAPSHOT, snapshot)
    except ConflictError:
        LOG.info(
            "Snapshot %s was created concurrently, using the existing one",
            snapshot.name,
        )
        return store.get(SNAPSHOT, snapshot.namespace, snapshot.name)
