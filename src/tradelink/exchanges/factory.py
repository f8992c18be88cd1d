"""Driver registry and factory for creating venue drivers by name."""

from typing import Any

from tradelink.exchanges.base import VenueDriver
from tradelink.exchanges.errors import UnknownVenueError

# Registry of venue driver classes
_driver_registry: dict[str, type[VenueDriver]] = {}


def register_driver(name: str, driver_class: type[VenueDriver]) -> None:
    """Register a venue driver class."""
    _driver_registry[name.lower()] = driver_class


def get_registered_drivers() -> list[str]:
    """Return list of registered driver names."""
    return list(_driver_registry.keys())


class DriverFactory:
    """Factory for creating venue driver instances."""

    @staticmethod
    def create(name: str, **kwargs: Any) -> VenueDriver:
        """Create a venue driver by name.

        Args:
            name: Venue name (e.g., 'okex', 'huobihadax')
            **kwargs: ``settings`` and optional ``transport`` for the driver

        Returns:
            VenueDriver instance

        Raises:
            UnknownVenueError: If the venue name is not registered
        """
        driver_class = _driver_registry.get(name.lower())
        if driver_class is None:
            available = ", ".join(get_registered_drivers()) or "none"
            raise UnknownVenueError(
                f"Unknown venue: '{name}'. Available: {available}"
            )
        return driver_class(**kwargs)

    @staticmethod
    def available() -> list[str]:
        """Return list of available venue drivers."""
        return get_registered_drivers()
