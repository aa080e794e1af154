from .json_file import JsonFileStateStorage, MemoryStateStorage
from .preferences import PreferenceStore

__all__ = ["JsonFileStateStorage", "MemoryStateStorage", "PreferenceStore"]
