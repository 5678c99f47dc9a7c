"""ID generation and timestamp utilities."""
import uuid
from datetime import datetime, timezone


def generate_workflow_id() -> str:
    """Generate a unique workflow ID (UUID4)."""
    return str(uuid.uuid4())


def generate_node_id() -> str:
    """Generate a node ID (prefixed 12-char hex string)."""
    return f"node-{uuid.uuid4().hex[:12]}"


def generate_edge_id() -> str:
    """Generate an edge ID (prefixed 12-char hex string)."""
    return f"edge-{uuid.uuid4().hex[:12]}"


def generate_run_id() -> str:
    """Generate a unique run ID (UUID4)."""
    return str(uuid.uuid4())


def generate_event_id() -> str:
    """Generate a unique event ID (UUID4)."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)
