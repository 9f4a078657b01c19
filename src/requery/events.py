"""Event kinds exchanged between the store, the build pipeline and the scheduler."""

DELETE_PAGE = "DELETE_PAGE"
CREATE_PAGE = "CREATE_PAGE"
CREATE_NODE = "CREATE_NODE"
DELETE_NODE = "DELETE_NODE"
DELETE_NODES = "DELETE_NODES"
DELETE_CACHE = "DELETE_CACHE"
SET_SCHEMA = "SET_SCHEMA"
SET_SCHEMA_COMPOSER = "SET_SCHEMA_COMPOSER"
ADD_FIELD_TO_NODE = "ADD_FIELD_TO_NODE"
ADD_CHILD_NODE_TO_PARENT_NODE = "ADD_CHILD_NODE_TO_PARENT_NODE"

# Upstream API work queue drained: the graph is quiet, dirty queries may run.
API_RUNNING_QUEUE_EMPTY = "API_RUNNING_QUEUE_EMPTY"

# Events after which a previously built query runner can no longer be trusted.
RUNNER_INVALIDATING = (
    DELETE_CACHE,
    CREATE_NODE,
    DELETE_NODE,
    DELETE_NODES,
    SET_SCHEMA_COMPOSER,
    SET_SCHEMA,
    ADD_FIELD_TO_NODE,
    ADD_CHILD_NODE_TO_PARENT_NODE,
)
