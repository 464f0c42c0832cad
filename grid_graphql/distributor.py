# Copyright 2021-present Kensho Technologies, LLC.
"""Read-only view of the cluster state, as reported by the grid's distributor.

The distributor tracks the nodes of the grid and the sessions running on them. It is owned
and updated elsewhere; the query layer only ever calls get_status() and reads the returned
snapshot, which is immutable.
"""
from abc import ABCMeta, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, unique
from typing import Any, Iterator, Mapping, Optional, Tuple


@unique
class Availability(Enum):
    """Whether a node accepts new sessions."""

    UP = "UP"
    DRAINING = "DRAINING"
    DOWN = "DOWN"


@dataclass(frozen=True)
class Session:
    """A browser session running in one slot of a node."""

    session_id: str
    uri: str  # Where the session can be reached.
    capabilities: Mapping[str, Any]
    start_time: datetime


@dataclass(frozen=True)
class Slot:
    """A place on a node where a single session matching the stereotype can run."""

    slot_id: str
    stereotype: Mapping[str, Any]
    last_started: datetime
    session: Optional[Session] = None


@dataclass(frozen=True)
class NodeStatus:
    """The state of one node at the time the distributor status was taken."""

    node_id: str
    uri: str
    availability: Availability
    max_session_count: int
    slots: Tuple[Slot, ...]
    version: str
    os_info: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate fields."""
        if self.max_session_count < 0:
            raise AssertionError(
                f"Expected a non-negative max_session_count for node {self.node_id}, "
                f"got {self.max_session_count}."
            )


@dataclass(frozen=True)
class DistributorStatus:
    """Snapshot of all nodes known to the distributor."""

    nodes: Tuple[NodeStatus, ...] = ()

    def iter_sessions(self) -> Iterator[Tuple[NodeStatus, Slot, Session]]:
        """Yield every running session together with the node and slot it is running in."""
        for node in self.nodes:
            for slot in node.slots:
                if slot.session is not None:
                    yield node, slot, slot.session


class Distributor(metaclass=ABCMeta):
    """The component of the grid that knows about nodes and sessions."""

    @abstractmethod
    def get_status(self) -> DistributorStatus:
        """Return the current state of the grid.

        Implementations must be fast and must not block on network I/O: the result is read
        synchronously while a query is being executed.
        """
        raise NotImplementedError()
