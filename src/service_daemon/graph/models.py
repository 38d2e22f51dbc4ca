"""Data models for the dependency graph solver."""

from pydantic import BaseModel, ConfigDict, Field

from service_daemon.event_bus.core import EventType, ServiceId, ServiceProtocol


class SolvedGraph(BaseModel):
    """Result of solving a service dependency graph.

    ``order`` holds every service exactly once, dependencies before
    dependents. ``subscribers`` maps each event type to its subscribed
    services in the same relative order.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    order: list[ServiceProtocol] = Field(default_factory=list)
    subscribers: dict[EventType, list[ServiceProtocol]] = Field(default_factory=dict)

    def order_ids(self) -> list[ServiceId]:
        """Service ids in dependency order."""
        return [service.id for service in self.order]

    def subscriber_ids(self, event_type: EventType) -> list[ServiceId]:
        """Ids of the services subscribed to ``event_type``, in dependency order."""
        return [service.id for service in self.subscribers.get(event_type, [])]

    def event_types(self) -> list[EventType]:
        """Event types with at least one subscriber."""
        return list(self.subscribers)
