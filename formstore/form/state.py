from copy import deepcopy
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Sequence, Union

from formstore.exceptions import FormDefinitionError

FORM_KEY_PREFIX = "form:"

ErrorTree = Dict[str, Any]
TouchTree = Dict[str, Any]
FieldValidator = Callable[[Any], Optional[str]]


@dataclass
class FormState:
    """
    The single persisted record of one form instance.
    """
    values: Any = field(default_factory=dict)
    errors: ErrorTree = field(default_factory=dict)
    touches: TouchTree = field(default_factory=dict)
    is_valid: bool = True
    loading: bool = False
    exists_changes: bool = False
    is_submitted: bool = False

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'FormState':
        known = {f.name for f in fields(cls)}
        return cls(**{key: deepcopy(value) for key, value in record.items() if key in known})

    def copy(self) -> 'FormState':
        return deepcopy(self)


# Everything but values; restored by reset
DEFAULT_STATE: Dict[str, Any] = {
    "errors": {},
    "touches": {},
    "is_valid": True,
    "loading": False,
    "exists_changes": False,
    "is_submitted": False,
}


@dataclass(frozen=True)
class SchemaViolation:
    """A single failure reported by a schema validator."""
    path: str
    message: str


@dataclass(frozen=True)
class FieldError:
    """An error produced by the free-form validate function or a field validator."""
    path: str
    message: str


class SchemaValidator(Protocol):
    """Anything that validates a whole value tree and reports every violation at once."""
    def validate_all(self, values: Any) -> Sequence[SchemaViolation]:
        ...


@dataclass(frozen=True)
class FormDefinition:
    """
    Construction-time configuration of a form.

    Attributes:
        name: Unique form name; the store key is derived from it.
        initial_values: Values the form starts with and resets to.
        initial_errors: Error tree the form starts with and resets to.
        initial_touches: Touched tree the form starts with and resets to.
        validate: Free-form validator, ``state -> error tree``.
        validation_schema: Schema validator exposing ``validate_all(values)``.
        on_submit: ``(state, manager) -> awaitable`` called by a valid submit.
        on_change: ``(values, manager) -> None`` called after value changes.
        enable_reinitialize: Let ``reinitialize`` adopt new initial values.
        validate_on_mount: Mark errored fields touched on the initial
                           validation and after every reset.
        reset_on_submit: Reset to initial values after a successful submit.
    """
    name: str
    initial_values: Any = field(default_factory=dict)
    initial_errors: ErrorTree = field(default_factory=dict)
    initial_touches: TouchTree = field(default_factory=dict)
    validate: Optional[Callable[[FormState], Optional[ErrorTree]]] = None
    validation_schema: Optional[SchemaValidator] = None
    on_submit: Optional[Callable[[FormState, Any], Union[Awaitable[Any], Any]]] = None
    on_change: Optional[Callable[[Any, Any], None]] = None
    enable_reinitialize: bool = False
    validate_on_mount: bool = False
    reset_on_submit: bool = False

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise FormDefinitionError("Form name must be a non-empty string.")

    @property
    def store_key(self) -> str:
        return make_store_key(self.name)


def make_store_key(name: str) -> str:
    return f"{FORM_KEY_PREFIX}{name}"
