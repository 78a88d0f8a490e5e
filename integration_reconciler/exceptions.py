class ReconcilerError(Exception):
    """The base class for all integration reconciler exceptions."""


class TransientError(ReconcilerError):
    """Denote a failure that may go away if the event is delivered again"""


class StoreError(TransientError):
    """Denote a failed call to the object store"""


class NotFoundError(StoreError):
    """Denote a missing object in the object store"""


class ConflictError(StoreError):
    """Denote an attempt to create an object that already exists"""


class VersionConflictError(StoreError):
    """Denote a write against a stale resource version"""


class CancelledError(TransientError):
    """Denote a store call aborted by the caller"""


class MissingSnapshotError(ReconcilerError):
    """Denote a test PipelineRun without a snapshot reference"""


class MissingImageError(ReconcilerError):
    """Denote a build PipelineRun without an output image"""


class AggregationError(ReconcilerError):
    """Denote a test result payload that could not be interpreted"""


class MissingComponentError(ReconcilerError):
    """Denote a build PipelineRun without a component reference"""
