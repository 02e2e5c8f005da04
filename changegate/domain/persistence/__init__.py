from .record_store import InMemoryRecordStore, JsonFileRecordStore, RecordStore

__all__ = ["InMemoryRecordStore", "JsonFileRecordStore", "RecordStore"]
