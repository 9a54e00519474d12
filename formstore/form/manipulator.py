from copy import deepcopy
from typing import Any, Callable, Dict, Optional, Union

from formstore.form.pipeline import ValidationPipeline
from formstore.form.state import DEFAULT_STATE, ErrorTree, FormState, TouchTree
from formstore.utils.path import get_nested, probe, set_nested


class FormManipulator:
    """
    In-place mutations of a FormState.

    Every mutator changes the given state and returns it for chaining; none
    of them touches the store.
    """
    def __init__(self,
                 pipeline: ValidationPipeline,
                 initial_values: Any,
                 initial_errors: ErrorTree,
                 initial_touches: TouchTree,
                 default_state: Dict[str, Any] = None):
        self.pipeline = pipeline
        self.initial_values = initial_values
        self.initial_errors = initial_errors
        self.initial_touches = initial_touches
        self.default_state = default_state if default_state is not None else DEFAULT_STATE

    def set_value(self, state: FormState, path: str, new_value: Any) -> FormState:
        set_nested(state.values, path, deepcopy(new_value))

        if not state.exists_changes:
            state.exists_changes = True

        return state

    def set_error(self, state: FormState, path: str, message: Optional[str]) -> FormState:
        if probe(state.errors, path) != message:
            set_nested(state.errors, path, message)
        return state

    def set_touched(self, state: FormState, path: str, value: bool) -> FormState:
        if probe(state.touches, path) != value:
            set_nested(state.touches, path, value)
        return state

    def get_value(self, state: FormState, path: str) -> Any:
        return get_nested(state.values, path)

    def get_error(self, state: FormState, path: str) -> Optional[str]:
        return probe(deepcopy(state.errors), path)

    def get_touched(self, state: FormState, path: str) -> bool:
        return probe(deepcopy(state.touches), path, False)

    def validate(self, state: FormState, all_touched: bool = False) -> FormState:
        return self.pipeline.run(state, all_touched)

    def reset(self, state: FormState, override: Union[Any, Callable[[Any], Any], None] = None) -> FormState:
        """
        Restores the state to its construction-time snapshot.

        Args:
            override: Replacement values, or a function receiving the current
                      values and returning the next ones. Defaults to the
                      initial values.
        """
        if override is None:
            values = deepcopy(self.initial_values)
        elif callable(override):
            values = override(deepcopy(state.values))
        else:
            values = deepcopy(override)

        for key, default in self.default_state.items():
            setattr(state, key, deepcopy(default))
        state.values = values
        state.errors = deepcopy(self.initial_errors)
        state.touches = deepcopy(self.initial_touches)

        return state
