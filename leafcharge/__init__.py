"""CAN bus charging coordination for a Nissan Leaf: battery, onboard and TC chargers, CHAdeMO port and relays."""

__version__ = "0.1.0"
__all__ = ["__version__"]