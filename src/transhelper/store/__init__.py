from .api import TranslationStore, make_store
from .json_store import JsonFileStore

__all__ = ["TranslationStore", "make_store", "JsonFileStore"]
