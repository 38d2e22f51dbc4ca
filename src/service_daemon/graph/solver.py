"""Dependency graph solver.

Turns a set of services with dependency edges into a deterministic total
order (Kahn's algorithm) and derives the per-event-type subscriber lists
from it.

Among services that become ready at the same time, the one registered first
is ordered first. This tie-break also fixes the delivery order between
independent subscribers of the same event type.
"""

import heapq
from collections.abc import Mapping

from loguru import logger

from service_daemon.event_bus.core import EventType, ServiceId, ServiceProtocol
from service_daemon.exceptions import CyclicDependencyError, UnknownDependencyError

from .models import SolvedGraph


def solve_dependencies(services: Mapping[ServiceId, ServiceProtocol]) -> SolvedGraph:
    """Order services so that every dependency precedes its dependents.

    Args:
        services: Services by id, in registration order

    Returns:
        SolvedGraph: The total order and the per-event-type subscriber lists

    Raises:
        UnknownDependencyError: If a service depends on an id not in ``services``
        CyclicDependencyError: If the dependencies do not form a DAG
    """
    if not services:
        logger.debug("No services registered, nothing to solve")
        return SolvedGraph()

    ids = list(services)
    index = {service_id: i for i, service_id in enumerate(ids)}

    # Repeated entries in one dependency list count as a single edge
    dependencies = {service_id: list(dict.fromkeys(service.dependencies())) for service_id, service in services.items()}
    _check_known_dependencies(dependencies, index)

    in_degree = {service_id: len(deps) for service_id, deps in dependencies.items()}
    dependents: dict[ServiceId, list[ServiceId]] = {service_id: [] for service_id in ids}
    for service_id, deps in dependencies.items():
        for dep_id in deps:
            dependents[dep_id].append(service_id)

    logger.trace(f"in: {dependencies}")
    logger.trace(f"out: {dependents}")

    # Kahn's algorithm, ready set keyed by registration index
    ready = [index[service_id] for service_id in ids if in_degree[service_id] == 0]
    heapq.heapify(ready)

    order: list[ServiceProtocol] = []
    while ready:
        service_id = ids[heapq.heappop(ready)]
        order.append(services[service_id])

        for dependent_id in dependents[service_id]:
            in_degree[dependent_id] -= 1
            if in_degree[dependent_id] == 0:
                heapq.heappush(ready, index[dependent_id])

    if len(order) < len(ids):
        unresolved = [service_id for service_id in ids if in_degree[service_id] > 0]
        logger.error(f"Service dependency graph is cyclic, unresolved: {unresolved}")
        raise CyclicDependencyError(unresolved)

    logger.info(f"Services in dependency order: {' '.join(str(service.id) for service in order)}")
    return SolvedGraph(order=order, subscribers=_collect_subscribers(order))


def _check_known_dependencies(dependencies: dict[ServiceId, list[ServiceId]], index: dict[ServiceId, int]) -> None:
    """Raise UnknownDependencyError listing every dependency on an unregistered id."""
    missing = {
        service_id: unknown
        for service_id, deps in dependencies.items()
        if (unknown := [dep_id for dep_id in deps if dep_id not in index])
    }
    if missing:
        logger.error(f"Unknown service dependencies: {missing}")
        raise UnknownDependencyError(missing)


def _collect_subscribers(order: list[ServiceProtocol]) -> dict[EventType, list[ServiceProtocol]]:
    """Group services by subscribed event type, keeping dependency order."""
    subscribers: dict[EventType, list[ServiceProtocol]] = {}
    for service in order:
        for event_type in dict.fromkeys(service.subscriptions()):
            subscribers.setdefault(event_type, []).append(service)
    return subscribers
