from andromeda_copilot.agent_runtime.store.base import ConfigStore
from andromeda_copilot.agent_runtime.store.local import LocalConfigStore

__all__ = ["ConfigStore", "LocalConfigStore"]
