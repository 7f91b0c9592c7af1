"""Game-server building blocks: queue-based RPC, background tasks, modules, logging, rotating files and UUIDs."""

__version__ = "0.1.0"