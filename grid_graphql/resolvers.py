# Copyright 2021-present Kensho Technologies, LLC.
"""Resolvers shaping the distributor's view of the grid into the schema's output types.

Only the root fields have resolvers of their own. They read a fresh status from the
distributor on every invocation and convert it into plain dicts keyed by the schema's field
names, which graphql-core's default resolver then reads for all nested fields. Nothing here
is cached: the distributor is the only source of truth for the data.
"""
from datetime import datetime, timedelta, timezone
from functools import partial
import json
from typing import Any, Callable, Dict, List, Mapping, Tuple
from urllib.parse import SplitResult

from graphql import GraphQLResolveInfo

from .distributor import Distributor, DistributorStatus, NodeStatus, Session, Slot
from .exceptions import SessionNotFoundError
from .schema import GraphQLUri, GraphQLUrl
from .schema.typedefs import ResolverBindings


Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    """Return the current time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Return the datetime in UTC, assuming UTC for timezone-naive values."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_json(value: Mapping[str, Any]) -> str:
    """Serialize capabilities-like mappings deterministically."""
    return json.dumps(value, sort_keys=True, default=str)


def _group_stereotypes(slots: Tuple[Slot, ...]) -> List[Dict[str, Any]]:
    """Count the slots of each distinct stereotype, in order of first appearance."""
    grouped: List[Dict[str, Any]] = []
    for slot in slots:
        for group in grouped:
            if group["stereotype"] == slot.stereotype:
                group["slots"] += 1
                break
        else:
            grouped.append({"stereotype": dict(slot.stereotype), "slots": 1})
    return grouped


def _make_slot_view(slot: Slot) -> Dict[str, Any]:
    """Shape a slot into the schema's Slot type."""
    return {
        "id": slot.slot_id,
        "stereotype": _to_json(slot.stereotype),
        "lastStarted": _as_utc(slot.last_started).isoformat(),
    }


def _make_session_view(
    node: NodeStatus, slot: Slot, session: Session, now: datetime
) -> Dict[str, Any]:
    """Shape a running session into the schema's Session type."""
    start_time = _as_utc(session.start_time)
    duration = now - start_time
    return {
        "id": session.session_id,
        "capabilities": _to_json(session.capabilities),
        "startTime": start_time.isoformat(),
        "uri": session.uri,
        "nodeId": node.node_id,
        "nodeUri": node.uri,
        "sessionDurationMillis": str(duration // timedelta(milliseconds=1)),
        "slot": _make_slot_view(slot),
    }


def _make_node_view(node: NodeStatus, now: datetime) -> Dict[str, Any]:
    """Shape a node's status into the schema's Node type."""
    sessions = [
        _make_session_view(node, slot, slot.session, now)
        for slot in node.slots
        if slot.session is not None
    ]
    return {
        "id": node.node_id,
        "uri": node.uri,
        "status": node.availability.value,
        "maxSession": node.max_session_count,
        "slotCount": len(node.slots),
        "sessionCount": len(sessions),
        "stereotypes": json.dumps(_group_stereotypes(node.slots), sort_keys=True, default=str),
        "version": node.version,
        "osInfo": {
            "arch": node.os_info.get("arch"),
            "name": node.os_info.get("name"),
            "version": node.os_info.get("version"),
        },
        "sessions": sessions,
    }


def make_grid_view(
    status: DistributorStatus, public_uri: SplitResult, now: datetime
) -> Dict[str, Any]:
    """Shape a distributor status into the schema's Grid type."""
    nodes = [_make_node_view(node, now) for node in status.nodes]
    return {
        "uri": public_uri,
        "totalSlots": sum(len(node.slots) for node in status.nodes),
        "nodeCount": len(status.nodes),
        "maxSession": sum(node.max_session_count for node in status.nodes),
        "sessionCount": sum(node_view["sessionCount"] for node_view in nodes),
        "nodes": nodes,
        "sessions": [session for node_view in nodes for session in node_view["sessions"]],
    }


def _resolve_grid(
    distributor: Distributor,
    public_uri: SplitResult,
    clock: Clock,
    _root: Any,
    _info: GraphQLResolveInfo,
) -> Dict[str, Any]:
    """Resolve GridQuery.grid from the distributor's current status."""
    return make_grid_view(distributor.get_status(), public_uri, _as_utc(clock()))


def _resolve_session(
    distributor: Distributor,
    clock: Clock,
    _root: Any,
    _info: GraphQLResolveInfo,
    id: str,  # pylint: disable=redefined-builtin
) -> Dict[str, Any]:
    """Resolve GridQuery.session by looking the session up on every node."""
    for node, slot, session in distributor.get_status().iter_sessions():
        if session.session_id == id:
            return _make_session_view(node, slot, session, _as_utc(clock()))

    raise SessionNotFoundError(f"No running session with id {id} was found in the grid.")


def build_resolver_bindings(
    distributor: Distributor, public_uri: SplitResult, clock: Clock = _utc_now
) -> ResolverBindings:
    """Return the runtime wiring of the grid schema.

    Args:
        distributor: source of the grid's current state, queried on every resolution.
        public_uri: the externally visible address of the grid, reported as Grid.uri.
        clock: returns the current time, used to compute session durations.

    Returns:
        ResolverBindings to compile the bundled grid schema with.
    """
    return ResolverBindings(
        field_resolvers={
            "GridQuery": {
                "grid": partial(_resolve_grid, distributor, public_uri, clock),
                "session": partial(_resolve_session, distributor, clock),
            },
        },
        scalars=(GraphQLUri, GraphQLUrl),
    )
