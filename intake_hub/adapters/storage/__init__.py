"""Storage adapters for Intake-Hub.

This module contains the storage adapters that implement the RecordStorePort
interface, plus the factory that picks one from configuration.
"""

from intake_hub.adapters.storage.json_file_adapter import JsonFileRecordStore
from intake_hub.adapters.storage.postgres_adapter import PostgresRecordStore
from intake_hub.domain.ports import RecordStorePort
from intake_hub.infrastructure.config_manager import StoreConfig


def create_record_store(store_config: StoreConfig) -> RecordStorePort:
    """Build the record store selected by configuration (not yet initialized)."""
    if store_config.backend == "postgresql":
        return PostgresRecordStore(store_config=store_config)
    return JsonFileRecordStore(store_config=store_config)


__all__ = ["JsonFileRecordStore", "PostgresRecordStore", "create_record_store"]
