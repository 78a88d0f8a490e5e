"""Object store protocols"""

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Mapping, Optional, Protocol, TypeVar

from .models import (
    Application,
    Component,
    IntegrationTestScenario,
    KubeObject,
    PipelineRun,
    Snapshot,
)

# pylint: disable=too-few-public-methods

T = TypeVar("T", bound=KubeObject)


@dataclass(frozen=True)
class ObjectKind(Generic[T]):
    """
    A kind of object kept in the object store

    :param group: API group of the kind
    :param version: API version of the kind
    :param plural: plural resource name used in API paths
    :param kind: the kind name
    :param model: the model objects of this kind are parsed into
    """

    group: str
    version: str
    plural: str
    kind: str
    model: type[T]

    @property
    def api_version(self) -> str:
        """group/version string of the kind"""
        return f"{self.group}/{self.version}"


APPLICATION = ObjectKind(
    "appstudio.redhat.com", "v1alpha1", "applications", "Application", Application
)
COMPONENT = ObjectKind(
    "appstudio.redhat.com", "v1alpha1", "components", "Component", Component
)
SNAPSHOT = ObjectKind(
    "appstudio.redhat.com", "v1alpha1", "snapshots", "Snapshot", Snapshot
)
INTEGRATION_TEST_SCENARIO = ObjectKind(
    "appstudio.redhat.com",
    "v1alpha1",
    "integrationtestscenarios",
    "IntegrationTestScenario",
    IntegrationTestScenario,
)
PIPELINE_RUN = ObjectKind(
    "tekton.dev", "v1beta1", "pipelineruns", "PipelineRun", PipelineRun
)


def get_field(raw: Mapping[str, Any], path: str) -> Any:
    """
    Get a value from a raw object using a dotted field path
    :param raw: object as returned by the store
    :param path: dotted path, e.g. spec.application
    :return: the value, or None if any part of the path is missing
    """
    value: Any = raw
    for part in path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


@dataclass(frozen=True)
class Query(Generic[T]):
    """
    Parameters for listing objects of a single kind in a namespace.
    All field and label predicates are exact matches.

    :param kind: kind of objects to list
    :param namespace: namespace to list in
    :param fields: dotted field path to expected value
    :param labels: label key to expected value
    :param predicate: additional filter applied to parsed objects
    """

    kind: ObjectKind[T]
    namespace: str
    fields: Mapping[str, str] = field(default_factory=dict)
    labels: Mapping[str, str] = field(default_factory=dict)
    predicate: Optional[Callable[[T], bool]] = None

    def label_selector(self) -> str:
        """Render the label predicates as a label selector"""
        return ",".join(f"{key}={value}" for key, value in self.labels.items())

    def matches_fields(self, raw: Mapping[str, Any]) -> bool:
        """Whether a raw object satisfies the field predicates"""
        return all(
            get_field(raw, path) == value for path, value in self.fields.items()
        )

    def matches(self, obj: T) -> bool:
        """Whether a parsed object satisfies the label and explicit predicates"""
        if any(obj.labels.get(key) != value for key, value in self.labels.items()):
            return False
        return self.predicate is None or self.predicate(obj)


class ObjectStore(Protocol):
    """
    Typed access to a remote, versioned object store.
    Store failures are raised as TransientError subclasses.
    """

    def get(self, kind: ObjectKind[T], namespace: str, name: str) -> T:
        """Get a single object, raise NotFoundError if it does not exist"""

    def create(self, kind: ObjectKind[T], obj: T) -> T:
        """Create an object, raise ConflictError if it already exists"""

    def patch_status(self, kind: ObjectKind[T], obj: T) -> T:
        """
        Write the status conditions of an object, conditioned on its resource
        version. Other status fields are left as they are on the server.
        Raise VersionConflictError if the object changed since it was read.
        """

    def list(self, query: Query[T]) -> list[T]:
        """List all objects satisfying the query"""
