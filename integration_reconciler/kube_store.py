"""Object store backed by the Kubernetes custom objects API"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from kubernetes import client  # type: ignore
from urllib3.exceptions import HTTPError

from .exceptions import (
    CancelledError,
    ConflictError,
    NotFoundError,
    StoreError,
    VersionConflictError,
)
from .models import Condition
from .store import ObjectKind, Query, T

LOG = logging.getLogger(__name__)

CANCEL_POLL_INTERVAL = 0.05


def translate_api_exception(
    ex: client.ApiException, conflict_error: type[StoreError] = ConflictError
) -> StoreError:
    """
    Translate a Kubernetes API exception to a store error
    :param ex: exception raised by the API client
    :param conflict_error: error type to use for a conflict response
    :return: the matching store error
    """
    if ex.status == 404:
        return NotFoundError(f"Not found: {ex.reason}")
    if ex.status == 409:
        return conflict_error(f"Conflict: {ex.reason}")
    return StoreError(f"Object store request failed ({ex.status}): {ex.reason}")


@dataclass(frozen=True)
class KubernetesStore:
    """
    ObjectStore implementation on top of CustomObjectsApi.
    Label predicates are sent to the server as a label selector, field and
    explicit predicates are evaluated on the listed objects.

    :param api: custom objects API client
    :param request_timeout: timeout in seconds for each API request
    :param cancel_event: once set, requests in flight are abandoned and no
        further requests are issued
    """

    api: client.CustomObjectsApi
    request_timeout: float = 30.0
    cancel_event: Optional[threading.Event] = None

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def _call(
        self,
        method: Callable[..., Any],
        conflict_error: type[StoreError] = ConflictError,
        **kwargs: Any,
    ) -> Any:
        """
        Send a request on the API client thread pool and wait for its response,
        giving up as soon as the cancellation event is set
        """
        if self._cancelled():
            raise CancelledError("Object store request cancelled")
        try:
            request = method(
                async_req=True, _request_timeout=self.request_timeout, **kwargs
            )
            while not request.ready():
                if self._cancelled():
                    raise CancelledError("Object store request cancelled in flight")
                request.wait(CANCEL_POLL_INTERVAL)
            return request.get()
        except client.ApiException as ex:
            raise translate_api_exception(ex, conflict_error) from ex
        except HTTPError as ex:
            raise StoreError(f"Object store unreachable: {ex}") from ex

    def get(self, kind: ObjectKind[T], namespace: str, name: str) -> T:
        raw = self._call(
            self.api.get_namespaced_custom_object,
            group=kind.group,
            version=kind.version,
            namespace=namespace,
            plural=kind.plural,
            name=name,
        )
        return kind.model.model_validate(raw)

    def create(self, kind: ObjectKind[T], obj: T) -> T:
        body = {
            "apiVersion": kind.api_version,
            "kind": kind.kind,
            **obj.model_dump(
                by_alias=True, exclude_none=True, exclude={"status"}, mode="json"
            ),
        }
        raw = self._call(
            self.api.create_namespaced_custom_object,
            group=kind.group,
            version=kind.version,
            namespace=obj.namespace,
            plural=kind.plural,
            body=body,
        )
        LOG.debug("Created %s %s/%s", kind.kind, obj.namespace, raw["metadata"]["name"])
        return kind.model.model_validate(raw)

    def patch_status(self, kind: ObjectKind[T], obj: T) -> T:
        conditions: list[Condition] = getattr(obj, "status").conditions
        body = {
            "metadata": {"resourceVersion": obj.metadata.resource_version},
            "status": {
                "conditions": [
                    condition.model_dump(by_alias=True, exclude_none=True, mode="json")
                    for condition in conditions
                ]
            },
        }
        raw = self._call(
            self.api.patch_namespaced_custom_object_status,
            conflict_error=VersionConflictError,
            group=kind.group,
            version=kind.version,
            namespace=obj.namespace,
            plural=kind.plural,
            name=obj.name,
            body=body,
        )
        return kind.model.model_validate(raw)

    def list(self, query: Query[T]) -> list[T]:
        raw = self._call(
            self.api.list_namespaced_custom_object,
            group=query.kind.group,
            version=query.kind.version,
            namespace=query.namespace,
            plural=query.kind.plural,
            label_selector=query.label_selector(),
        )
        objects = [
            query.kind.model.model_validate(item)
            for item in raw["items"]
            if query.matches_fields(item)
        ]
        return [obj for obj in objects if query.matches(obj)]
