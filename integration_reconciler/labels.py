"""Well-known label keys and values used by AppStudio integration objects"""

from typing import Final

PIPELINE_TYPE_LABEL: Final[str] = "pipelines.appstudio.openshift.io/type"
PIPELINE_TYPE_BUILD: Final[str] = "build"
PIPELINE_TYPE_TEST: Final[str] = "test"

APPLICATION_LABEL: Final[str] = "appstudio.openshift.io/application"
COMPONENT_LABEL: Final[str] = "appstudio.openshift.io/component"

SNAPSHOT_LABEL: Final[str] = "test.appstudio.openshift.io/snapshot"
SCENARIO_LABEL: Final[str] = "test.appstudio.openshift.io/scenario"
OPTIONAL_LABEL: Final[str] = "test.appstudio.openshift.io/optional"

SNAPSHOT_COMPONENT_LABEL: Final[str] = "component"

TEST_OUTPUT_RESULT: Final[str] = "HACBS_TEST_OUTPUT"
IMAGE_URL_RESULT: Final[str] = "IMAGE_URL"
IMAGE_DIGEST_RESULT: Final[str] = "IMAGE_DIGEST"

TEST_SUCCEEDED_CONDITION: Final[str] = "TestSucceeded"
RECONCILED_CONDITION: Final[str] = "IntegrationReconciled"
