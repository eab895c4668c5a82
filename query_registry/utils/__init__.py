from query_registry.utils.logger_config import configure_logging

__all__ = ['configure_logging']
