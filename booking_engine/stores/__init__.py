from booking_engine.stores.base import AppointmentStore, ResourceKey, ServiceStore, TemplateStore
from booking_engine.stores.cache import CachedTemplateStore
from booking_engine.stores.memory import InMemoryAppointmentStore, InMemoryCatalog

__all__ = [
    "AppointmentStore",
    "CachedTemplateStore",
    "InMemoryAppointmentStore",
    "InMemoryCatalog",
    "ResourceKey",
    "ServiceStore",
    "TemplateStore",
]
