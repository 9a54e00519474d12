from .exceptions import FormDefinitionError, FormStoreError, PathError, RecordNotFoundError, StoreError
from .form.manager import FormManager, Subscription, create_form, open_form
from .form.schema import Schema
from .form.state import FormDefinition, FormState
from .form.validator import Validator
from .store import MemoryStore, Store

__version__ = "0.1.0"

get_version = lambda: __version__

__all__ = [
    "FormDefinition",
    "FormDefinitionError",
    "FormManager",
    "FormState",
    "FormStoreError",
    "MemoryStore",
    "PathError",
    "RecordNotFoundError",
    "Schema",
    "Store",
    "StoreError",
    "Subscription",
    "Validator",
    "create_form",
    "open_form",
]
