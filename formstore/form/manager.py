import asyncio
import logging
from contextlib import contextmanager
from copy import deepcopy
from typing import Any, Callable, Dict, Iterator, Optional, Union

from formstore.exceptions import StoreError
from formstore.form.access import FieldAccessProxy
from formstore.form.manipulator import FormManipulator
from formstore.form.pipeline import ValidationPipeline, is_error_free
from formstore.form.state import DEFAULT_STATE, ErrorTree, FieldValidator, FormDefinition, FormState, TouchTree
from formstore.store import Store
from formstore.utils.async_task import AsyncTask
from formstore.utils.path import probe

logger = logging.getLogger(__name__)


class Subscription:
    """
    Change feed of a value derived from a form's state.

    Calling the subscription returns the latest delivered value. The
    listener only fires when the derived value actually changes.
    """
    def __init__(self, store: Store, key: str, selector: Callable[[FormState], Any],
                 initial_value: Any, listener: Optional[Callable[[Any], None]] = None):
        self._selector = selector
        self._listener = listener
        self._value = initial_value
        self._unwatch = store.watch(key, self._on_change)

    def __call__(self) -> Any:
        return self._value

    def _on_change(self, record: Optional[Dict[str, Any]]) -> None:
        # Evicted records are ignored until the form writes again
        if record is None:
            return
        value = self._selector(FormState.from_record(record))
        if value != self._value:
            self._value = value
            if self._listener is not None:
                self._listener(value)

    def dispose(self) -> None:
        if self._unwatch is not None:
            self._unwatch()
            self._unwatch = None


class FormManager:
    """
    Public API of one form whose state lives in an external store.

    Every operation reads the record, mutates a private copy and writes the
    whole record back; nothing is cached between calls.

    Usage::

        store = MemoryStore()
        form = FormManager(store, FormDefinition(name="signup", initial_values={"age": 10}))
        form.set_field_value("age", 20)
        form.get().values  # {"age": 20}
    """
    def __init__(self, store: Store, definition: FormDefinition):
        self.store = store
        self.definition = definition
        self.name = definition.name
        self.store_key = definition.store_key
        self.on_submit = definition.on_submit
        self.on_change = definition.on_change
        self.validate_on_mount = definition.validate_on_mount
        self.reset_on_submit = definition.reset_on_submit
        self.enable_reinitialize = definition.enable_reinitialize
        self.initial_values = deepcopy(definition.initial_values)
        self.initial_errors = deepcopy(definition.initial_errors) or {}
        self.initial_touches = deepcopy(definition.initial_touches) or {}
        self.field_validators: Dict[str, FieldValidator] = {}
        self.manipulator = FormManipulator(
            ValidationPipeline(
                validate=definition.validate,
                validation_schema=definition.validation_schema,
                field_validators=self.field_validators,
            ),
            initial_values=self.initial_values,
            initial_errors=self.initial_errors,
            initial_touches=self.initial_touches,
        )

        # Writes the initial record when the store has none
        self.get()

        self.validate(self.validate_on_mount)

    def __repr__(self) -> str:
        return f"<FormManager {self.name!r}>"

    @property
    def F(self) -> FieldAccessProxy:
        """
        Returns a FieldAccessProxy for cleaner field access syntax.
        Usage: form.F.user.email.value
        """
        return FieldAccessProxy(self)

    # -- Store access ---
    def set(self, state: FormState) -> None:
        self.store.write(self.store_key, state.to_record())

    def get(self) -> FormState:
        record = self._read()

        if record is None:
            logger.debug("Initializing record for form '%s'", self.name)
            self.set(self._initial_state())
            record = self._read()
            if record is None:
                # The store dropped the write; the state is still never absent
                return self._initial_state()

        return FormState.from_record(record)

    def _read(self) -> Optional[Dict[str, Any]]:
        try:
            return self.store.read(self.store_key)
        except (StoreError, LookupError) as e:
            logger.warning("Read of '%s' failed, treating as absent: %s", self.store_key, e)
            return None

    def _initial_state(self) -> FormState:
        state = FormState(values=deepcopy(self.initial_values), **deepcopy(DEFAULT_STATE))
        state.errors = deepcopy(self.initial_errors)
        state.touches = deepcopy(self.initial_touches)
        return state

    # -- Subscriptions ---
    def use_state(self, selector: Optional[Callable[[FormState], Any]] = None,
                  listener: Optional[Callable[[Any], None]] = None) -> Subscription:
        """
        Subscribes to the form state, or to ``selector(state)`` when given.
        Dispose the returned subscription to stop watching.
        """
        selector = selector or (lambda state: state)
        return Subscription(self.store, self.store_key, selector, selector(self.get()), listener)

    def use_value(self, path: str, listener: Optional[Callable[[Any], None]] = None) -> Subscription:
        return self.use_state(lambda state: self.manipulator.get_value(state, path), listener)

    def use_touched(self, path: str, listener: Optional[Callable[[bool], None]] = None) -> Subscription:
        return self.use_state(lambda state: self.manipulator.get_touched(state, path), listener)

    def use_error(self, path: str, listener: Optional[Callable[[Optional[str]], None]] = None) -> Subscription:
        return self.use_state(lambda state: self.manipulator.get_error(state, path), listener)

    # -- Whole-tree setters ---
    def set_values(self, values: Any) -> None:
        state = self.get()
        state.values = deepcopy(values)
        self.set(state)

        if self.on_change:
            self.on_change(values, self)

    def set_errors(self, errors: ErrorTree) -> None:
        state = self.get()
        state.errors = deepcopy(errors)
        self.set(state)

    def set_touches(self, touches: TouchTree) -> None:
        state = self.get()
        state.touches = deepcopy(touches)
        self.set(state)

    # -- Field setters ---
    def set_field_value(self, path: str, value: Any) -> FormState:
        state = self.get()

        if not probe(state.touches, path):
            self.manipulator.set_touched(state, path, True)

        self.manipulator.set_value(state, path, value)
        self.manipulator.validate(state, False)
        self.set(state)

        if self.on_change:
            self.on_change(state.values, self)

        return state

    def set_field_error(self, path: str, message: Optional[str]) -> None:
        state = self.get()

        self.manipulator.set_error(state, path, message)
        state.is_valid = is_error_free(state.errors)

        self.set(state)

    def set_field_touched(self, path: str, value: bool) -> None:
        state = self.get()
        self.manipulator.set_touched(state, path, value)
        self.set(state)

    # -- Flag overrides ---
    def set_is_valid(self, value: bool) -> None:
        self._set_flag("is_valid", value)

    def set_is_submitted(self, value: bool) -> None:
        self._set_flag("is_submitted", value)

    def set_exists_changes(self, value: bool) -> None:
        self._set_flag("exists_changes", value)

    def set_loading(self, value: bool) -> None:
        self._set_flag("loading", value)

    def _set_flag(self, name: str, value: bool) -> None:
        state = self.get()
        setattr(state, name, value)
        self.set(state)

    # -- Validation ---
    def validate(self, all_touched: bool = False) -> FormState:
        state = self.get()
        self.manipulator.validate(state, all_touched)
        self.set(state)
        return state

    def add_field_validator(self, path: str, func: FieldValidator) -> None:
        """Registers a validator for ``path``. The first registration for a path wins."""
        if path in self.field_validators:
            logger.debug("Validator for '%s' already registered on form '%s', ignoring", path, self.name)
            return
        self.field_validators[path] = func

    def remove_field_validator(self, path: str) -> None:
        self.field_validators.pop(path, None)

    # -- Submit / reset ---
    def submit(self) -> Optional[asyncio.Task]:
        """
        Validates with every errored field marked touched and flags the form
        submitted. A valid form with an ``on_submit`` handler enters loading
        and the handler is scheduled on the running loop.

        Without a running event loop the handler is run to completion
        before ``submit`` returns.

        Returns:
            The task running the handler, or None when no handler ran or it
            already settled. The task never raises; handler failures are
            logged and only clear ``loading``.
        """
        state = self.get()
        self.manipulator.validate(state, True)

        state.is_submitted = True

        if not (self.on_submit and state.is_valid):
            self.set(state)
            return None

        state.loading = True
        self.set(state)

        def on_success(_result):
            state.loading = False
            if self.reset_on_submit:
                self.manipulator.reset(state)
            self.set(state)

        def on_error(error: Exception):
            logger.warning("Submit handler of form '%s' failed", self.name, exc_info=error)
            state.loading = False
            self.set(state)

        if AsyncTask.has_running_loop():
            return AsyncTask.run(self.on_submit, args=(state.copy(), self), on_success=on_success, on_error=on_error)

        # Synchronous caller: settle the handler before returning
        AsyncTask.run_sync(self.on_submit, args=(state.copy(), self), on_success=on_success, on_error=on_error)
        return None

    def reset(self, override: Union[Any, Callable[[Any], Any], None] = None) -> None:
        state = self.get()

        self.manipulator.reset(state, override)
        self.manipulator.validate(state, self.validate_on_mount)

        state.is_submitted = False
        state.exists_changes = False

        self.set(state)

    # -- Initial values ---
    def get_initial_state(self) -> Any:
        return deepcopy(self.initial_values)

    def reinitialize(self, initial_values: Any) -> bool:
        """
        Adopts new initial values and resets the form to them.

        Only acts when ``enable_reinitialize`` is set and the values differ
        from the current initial values. Returns whether a reset happened.
        """
        if not self.enable_reinitialize or initial_values == self.initial_values:
            return False

        logger.debug("Reinitializing form '%s'", self.name)
        self.initial_values = deepcopy(initial_values)
        self.manipulator.initial_values = self.initial_values
        self.reset(initial_values)
        return True


def create_form(store: Store, name: str, initial_values: Any = None, **options) -> FormManager:
    """
    Factory function to create and initialize a FormManager.

    Args:
        store: Store the form state lives in.
        name: Unique form name.
        initial_values: Initial values, an empty dict by default.
        **options: Any other FormDefinition field (validate, validation_schema,
                   on_submit, on_change, validate_on_mount, ...).
    """
    definition = FormDefinition(
        name=name,
        initial_values=initial_values if initial_values is not None else {},
        **options,
    )
    return FormManager(store, definition)


@contextmanager
def open_form(store: Store, definition: FormDefinition,
              remove_on_close: bool = False, reset_on_close: bool = False) -> Iterator[FormManager]:
    """
    Scopes a form's record to a ``with`` block.

    On exit the record is evicted from the store (``remove_on_close``) or the
    form is reset (``reset_on_close``); otherwise the record stays.
    """
    manager = FormManager(store, definition)
    try:
        yield manager
    finally:
        if remove_on_close:
            store.evict(manager.store_key)
        elif reset_on_close:
            manager.reset()
