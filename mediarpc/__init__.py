"""JSON-RPC server helpers: request cache, resource checks, property trees, configuration loading and transactions."""

__version__ = "0.1.0"
__all__ = ["config", "ptree", "request_cache", "resources", "rpc", "transaction"]